"""Order fulfilment — commands and handler.

The whole order and each partner's sub-order move forward independently.
Advancing the order drags lagging sub-orders along with it.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class AdvanceOrderStatus:
    order_number = String(required=True, max_length=50)
    status = String(required=True, max_length=20)


@ordering.command(part_of="Order")
class AdvancePartnerOrder:
    """A partner moves its own share of an order forward, e.g. ships it."""

    order_number = String(required=True, max_length=50)
    partner_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    tracking_number = String(max_length=255)


@ordering.command_handler(part_of=Order)
class FulfillmentHandler:
    @handle(AdvanceOrderStatus)
    def advance_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.find_by_order_number(command.order_number)
        order.advance_status(command.status)
        repo.add(order)

        logger.info("Order advanced", order_number=order.order_number, status=order.status)

    @handle(AdvancePartnerOrder)
    def advance_partner_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.find_by_order_number(command.order_number)
        order.advance_partner_order(
            partner_id=command.partner_id,
            target_status=command.status,
            tracking_number=command.tracking_number,
        )
        repo.add(order)

        logger.info(
            "Partner order advanced",
            order_number=order.order_number,
            partner_id=str(command.partner_id),
            status=command.status,
        )
