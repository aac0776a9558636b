"""Post-payment cart reconciliation — command and handler.

Once an order's payment is confirmed, the products it bought leave the
buyer's cart. The pruned cart and the order's ``cart_reconciled_at`` marker
are saved in the same unit of work, so an order prunes the cart exactly
once: later runs, such as a replayed gateway callback, find the marker and
leave whatever the buyer has put in the cart since untouched.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import String
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.domain import ordering
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Cart")
class ReconcileCart:
    order_number = String(required=True, max_length=50)


@ordering.command_handler(part_of=Cart)
class ReconcileCartHandler:
    @handle(ReconcileCart)
    def reconcile(self, command):
        order_repo = current_domain.repository_for(Order)
        order = order_repo.find_by_order_number(command.order_number)
        if not order.is_paid:
            raise ValidationError({"order_number": ["Only paid orders are reconciled against the cart"]})

        if order.is_cart_reconciled:
            logger.info(
                "Cart already reconciled",
                order_number=order.order_number,
                reconciled_at=order.cart_reconciled_at.isoformat(),
            )
            return []

        repo = current_domain.repository_for(Cart)
        cart = repo.find_by_buyer(order.buyer_id)
        removed = []
        if cart is None:
            logger.info("No cart to reconcile", order_number=order.order_number, buyer_id=str(order.buyer_id))
        else:
            removed = cart.prune_purchased(order.product_ids(), order_number=order.order_number)
            if removed:
                repo.add(cart)

        order.mark_cart_reconciled()
        order_repo.add(order)

        logger.info(
            "Purchased items removed from cart",
            order_number=order.order_number,
            cart_id=str(cart.id) if cart else None,
            removed=removed,
            remaining_items=cart.total_items if cart else 0,
            total_amount=cart.total_amount if cart else 0,
        )
        return removed
