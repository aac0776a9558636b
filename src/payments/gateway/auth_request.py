"""Signed parameters for opening the gateway's payment window."""

from collections.abc import Callable
from datetime import datetime

from payments.gateway.classifier import PayMethod
from payments.gateway.settings import GatewaySettings
from payments.gateway.signature import canonical_amount, mint_edi_date, sign_auth_request


def build_auth_request(
    settings: GatewaySettings,
    order_number: str,
    amount: int,
    goods_name: str,
    buyer_name: str = "",
    buyer_email: str = "",
    buyer_tel: str = "",
    pay_method: str = PayMethod.CARD.value,
    clock: Callable[[], datetime] = datetime.now,
) -> dict[str, str]:
    """Form fields the browser posts to the gateway to start authentication."""
    if pay_method not in {method.value for method in PayMethod}:
        raise ValueError(f"Unsupported pay method: {pay_method!r}")
    amount = canonical_amount(amount)
    edi_date = mint_edi_date(clock())
    return {
        "PayMethod": pay_method,
        "GoodsName": goods_name,
        "Amt": amount,
        "MID": settings.merchant_id,
        "Moid": order_number,
        "BuyerName": buyer_name,
        "BuyerEmail": buyer_email,
        "BuyerTel": buyer_tel,
        "ReturnURL": settings.return_url,
        "EdiDate": edi_date,
        "SignData": sign_auth_request(edi_date, settings.merchant_id, amount, settings.merchant_key),
        "CharSet": "utf-8",
    }
