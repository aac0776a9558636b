"""Pydantic request/response schemas for the Payments API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands. The gateway callback itself is a form POST and
has no schema here.
"""

from pydantic import BaseModel, Field


class PaymentWindowRequest(BaseModel):
    order_number: str
    goods_name: str = Field(min_length=1, max_length=40)
    buyer_name: str = ""
    buyer_email: str = ""
    buyer_tel: str = ""
    pay_method: str = "CARD"

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "order_number": "ORD-LZ8K2M1Q-7F3KD",
                    "goods_name": "Linen shirt and 1 more",
                    "buyer_name": "Kim Minji",
                    "buyer_email": "minji@example.com",
                    "buyer_tel": "01012345678",
                    "pay_method": "CARD",
                }
            ]
        }
    }


class PaymentWindowResponse(BaseModel):
    auth_url: str
    form_data: dict[str, str]


class CancelPaymentRequest(BaseModel):
    order_number: str
    reason: str = Field(min_length=1, max_length=500)


class CancelPaymentResponse(BaseModel):
    success: bool
    result_code: str | None = None
    result_message: str | None = None
