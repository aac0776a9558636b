"""Order cancellation — command and handler."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import CancellationActor, Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CancelOrder:
    order_number = String(required=True, max_length=50)
    reason = String(required=True, max_length=500)
    cancelled_by = String(required=True, choices=CancellationActor, max_length=50)


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.find_by_order_number(command.order_number)
        if order.is_paid:
            # Captured funds go back through the gateway, which cancels the order
            raise ValidationError({"payment_status": ["Paid orders are cancelled by cancelling the payment"]})

        order.cancel(reason=command.reason, cancelled_by=command.cancelled_by)
        repo.add(order)
        logger.info("Order cancelled", order_number=order.order_number, cancelled_by=command.cancelled_by)
