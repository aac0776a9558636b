"""Order placement — command and handler."""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.partners import get_partner_directory

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class PlaceOrder:
    buyer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    order_number = String(max_length=50)
    payment_method = String(max_length=50)
    placed_at = DateTime()


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items

        # Snapshot each partner's current terms; the order never re-reads them
        directory = get_partner_directory()
        partner_ids = {str(item["partner_id"]) for item in items_data if item.get("partner_id")}
        partner_terms = {partner_id: directory.terms_for(partner_id) for partner_id in partner_ids}

        repo = current_domain.repository_for(Order)
        if command.order_number and repo.has_order_number(command.order_number):
            raise ValidationError({"order_number": ["Order number is already taken"]})

        order = Order.create(
            buyer_id=command.buyer_id,
            items_data=items_data,
            partner_terms=partner_terms,
            order_number=command.order_number,
            payment_method=command.payment_method,
            placed_at=command.placed_at,
        )
        repo.add(order)

        logger.info(
            "Order placed",
            order_number=order.order_number,
            buyer_id=str(order.buyer_id),
            total_amount=order.total_amount,
            partner_count=len(order.partner_orders),
        )
        return order.order_number
