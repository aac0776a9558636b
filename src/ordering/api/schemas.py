"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class OrderItemSchema(BaseModel):
    product_id: str
    partner_id: str
    name: str
    price: int = Field(ge=0)
    quantity: int = Field(ge=1, le=99)


class PartnerOrderSchema(BaseModel):
    partner_id: str
    partner_name: str | None = None
    subtotal: int
    commission_rate: float
    commission: int
    status: str
    tracking_number: str | None = None
    settled: bool = False


class CartItemSchema(BaseModel):
    product_id: str
    quantity: int
    price: int


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    buyer_id: str
    items: list[OrderItemSchema] = Field(min_length=1)
    payment_method: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "buyer_id": "buyer-001",
                    "items": [
                        {
                            "product_id": "prod-001",
                            "partner_id": "partner-001",
                            "name": "Linen shirt",
                            "price": 39000,
                            "quantity": 1,
                        }
                    ],
                    "payment_method": "CARD",
                }
            ]
        }
    }


class AdvanceOrderRequest(BaseModel):
    status: str


class AdvancePartnerOrderRequest(BaseModel):
    status: str
    tracking_number: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str
    cancelled_by: str = "buyer"


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, le=99)
    price: int = Field(ge=0)


class UpdateCartItemRequest(BaseModel):
    quantity: int = Field(ge=1, le=99)


# ---------------------------------------------------------------------------
# Settlement Request Schemas
# ---------------------------------------------------------------------------
class SettlePartnerRequest(BaseModel):
    placed_before: datetime


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderNumberResponse(BaseModel):
    order_number: str


class OrderResponse(BaseModel):
    order_number: str
    buyer_id: str
    status: str
    payment_status: str
    payment_method: str | None = None
    transaction_id: str | None = None
    total_amount: int
    items: list[OrderItemSchema]
    partner_orders: list[PartnerOrderSchema]
    created_at: datetime | None = None
    paid_at: datetime | None = None


class CartResponse(BaseModel):
    buyer_id: str
    items: list[CartItemSchema]
    total_items: int
    total_amount: int


class GrowthSchema(BaseModel):
    percent: float
    is_new: bool


class SettlementSummarySchema(BaseModel):
    start: datetime
    end: datetime
    revenue: int
    net_revenue: int
    order_count: int
    average_order_value: float
    commission_total: int
    pending_commission: int
    realized_commission: int


class DailyRevenueSchema(BaseModel):
    day: str
    revenue: int
    order_count: int


class TopProductSchema(BaseModel):
    product_id: str
    name: str
    quantity: int
    revenue: int


class PartnerSettlementResponse(BaseModel):
    partner_id: str
    period: str
    current: SettlementSummarySchema
    previous: SettlementSummarySchema
    revenue_growth: GrowthSchema
    order_growth: GrowthSchema
    commission_growth: GrowthSchema
    daily_revenue: list[DailyRevenueSchema]
    top_products: list[TopProductSchema]


class PayoutResponse(BaseModel):
    settled_orders: int
    payout: int


class StatusResponse(BaseModel):
    status: str = "ok"
