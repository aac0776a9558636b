"""Order payment — the ledger side of the gateway callback.

Every handler here is keyed by order number and safe to replay. Handlers
return a ``LedgerOutcome`` value telling the caller whether this call
changed the order or found the work already done.
"""

from enum import Enum

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, PaymentStatus

logger = structlog.get_logger(__name__)


class LedgerOutcome(Enum):
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    REFUNDED = "refunded"
    REPLAYED = "replayed"


@ordering.command(part_of="Order")
class ConfirmOrderPayment:
    order_number = String(required=True, max_length=50)
    transaction_id = String(required=True, max_length=255)
    payment_method = String(max_length=50)
    amount = Integer()  # Amount the gateway approved, checked against the order total


@ordering.command(part_of="Order")
class RecordPaymentDecline:
    order_number = String(required=True, max_length=50)
    reason = String(required=True, max_length=500)


@ordering.command(part_of="Order")
class RefundOrderPayment:
    order_number = String(required=True, max_length=50)
    reason = String(required=True, max_length=500)


@ordering.command_handler(part_of=Order)
class OrderPaymentHandler:
    @handle(ConfirmOrderPayment)
    def confirm_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.find_by_order_number(command.order_number)

        if order.is_paid:
            logger.info(
                "Payment confirmation already applied",
                order_number=order.order_number,
                transaction_id=order.transaction_id,
            )
            return LedgerOutcome.REPLAYED.value

        if command.amount is not None and command.amount != order.total_amount:
            logger.error(
                "Approved amount does not match order total",
                order_number=order.order_number,
                approved_amount=command.amount,
                total_amount=order.total_amount,
            )
            raise ValidationError({"amount": ["Approved amount does not match the order total"]})

        order.confirm_payment(
            transaction_id=command.transaction_id,
            payment_method=command.payment_method,
        )
        if not repo.save_if_payment_status(order, PaymentStatus.PENDING):
            return self._lost_race(repo, order.order_number)

        logger.info(
            "Payment confirmed",
            order_number=order.order_number,
            transaction_id=command.transaction_id,
            amount=order.total_amount,
        )
        return LedgerOutcome.CONFIRMED.value

    @handle(RecordPaymentDecline)
    def record_decline(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.find_by_order_number(command.order_number)

        if order.is_paid:
            logger.warning(
                "Ignoring decline for an order already paid",
                order_number=order.order_number,
                reason=command.reason,
            )
            return LedgerOutcome.REPLAYED.value

        if order.payment_status != PaymentStatus.PENDING.value:
            logger.info(
                "Payment decline already recorded",
                order_number=order.order_number,
                payment_status=order.payment_status,
            )
            return LedgerOutcome.DECLINED.value

        order.record_payment_decline(reason=command.reason)
        if not repo.save_if_payment_status(order, PaymentStatus.PENDING):
            if repo.stored_payment_status(order.order_number) == PaymentStatus.COMPLETED:
                return LedgerOutcome.REPLAYED.value
            return LedgerOutcome.DECLINED.value

        logger.info("Payment declined", order_number=order.order_number, reason=command.reason)
        return LedgerOutcome.DECLINED.value

    @handle(RefundOrderPayment)
    def refund_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.find_by_order_number(command.order_number)

        if order.payment_status == PaymentStatus.REFUNDED.value:
            return LedgerOutcome.REPLAYED.value

        order.refund_payment(reason=command.reason)
        if not repo.save_if_payment_status(order, PaymentStatus.COMPLETED):
            raise ValidationError({"payment_status": ["Payment status changed while refunding"]})

        logger.info("Payment refunded", order_number=order.order_number, amount=order.total_amount)
        return LedgerOutcome.REFUNDED.value

    def _lost_race(self, repo, order_number):
        stored = repo.stored_payment_status(order_number)
        if stored == PaymentStatus.COMPLETED:
            logger.info("Concurrent payment confirmation already applied", order_number=order_number)
            return LedgerOutcome.REPLAYED.value

        logger.error(
            "Payment confirmation lost to a conflicting update",
            order_number=order_number,
            payment_status=stored.value if stored else None,
        )
        raise ValidationError({"payment_status": ["Payment status changed while confirming"]})
