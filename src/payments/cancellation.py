"""Cancellation of captured payments through the gateway.

Only the full amount is cancelled. The ledger is updated only after the
gateway confirms, so a failed or unreachable cancel leaves the order paid.
"""

from collections.abc import Callable
from datetime import datetime

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.order.order import Order
from ordering.order.payment import RefundOrderPayment
from payments.errors import GatewayUnreachable
from payments.gateway.approval import CHARSET
from payments.gateway.port import CancelResult, GatewayTransport
from payments.gateway.responses import parse_gateway_response
from payments.gateway.settings import GatewaySettings
from payments.gateway.signature import canonical_amount, mint_edi_date, sign_cancel

logger = structlog.get_logger(__name__)

FULL_CANCEL = "0"


class PaymentCanceller:
    def __init__(
        self,
        transport: GatewayTransport,
        settings: GatewaySettings,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.transport = transport
        self.settings = settings
        self.clock = clock

    def cancel(self, order_number: str, reason: str) -> CancelResult:
        order = current_domain.repository_for(Order).find_by_order_number(order_number)
        if not order.is_paid:
            raise ValidationError({"payment_status": ["Only completed payments can be cancelled"]})

        amount = canonical_amount(order.total_amount)
        edi_date = mint_edi_date(self.clock())
        fields = {
            "TID": order.transaction_id,
            "MID": self.settings.merchant_id,
            "Moid": order.order_number,
            "CancelAmt": amount,
            "CancelMsg": reason,
            "PartialCancelCode": FULL_CANCEL,
            "EdiDate": edi_date,
            "CharSet": CHARSET,
            "SignData": sign_cancel(self.settings.merchant_id, amount, edi_date, self.settings.merchant_key),
        }

        logger.info("Requesting payment cancellation", order_number=order_number, amount=amount)
        try:
            body = self.transport.post_form(self.settings.cancel_url, fields, timeout=self.settings.approval_timeout)
        except GatewayUnreachable as exc:
            logger.warning("Cancellation did not reach the gateway", order_number=order_number, error=str(exc))
            return CancelResult(success=False, result_message=str(exc))

        result = CancelResult.from_response(parse_gateway_response(body))
        if not result.success:
            logger.warning(
                "Gateway refused cancellation",
                order_number=order_number,
                result_code=result.result_code,
                result_message=result.result_message,
            )
            return result

        current_domain.process(RefundOrderPayment(order_number=order_number, reason=reason), asynchronous=False)
        logger.info("Payment cancelled", order_number=order_number, amount=amount)
        return result
