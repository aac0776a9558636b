"""Partner payout — marks delivered sub-orders as settled.

This is the only write in the settlement area. A payout run settles every
delivered, unsettled sub-order of a partner whose order was placed before
the cutoff. Settled sub-orders are skipped, so a repeated run pays nothing
twice.
"""

from datetime import UTC

import structlog
from protean import handle
from protean.fields import DateTime, Identifier
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class SettlePartner:
    partner_id = Identifier(required=True)
    placed_before = DateTime(required=True)


@ordering.command_handler(part_of=Order)
class SettlePartnerHandler:
    @handle(SettlePartner)
    def settle(self, command):
        repo = current_domain.repository_for(Order)
        settled_orders = 0
        payout = 0
        cutoff = command.placed_before
        if cutoff.tzinfo is None:
            cutoff = cutoff.replace(tzinfo=UTC)

        for order in repo.placed_before(cutoff):
            share = next(
                (po for po in order.partner_orders if str(po.partner_id) == str(command.partner_id)),
                None,
            )
            if share is None or share.is_settled or share.status != OrderStatus.DELIVERED.value:
                continue
            if not order.is_paid:
                continue

            order.settle_partner_order(command.partner_id)
            repo.add(order)
            settled_orders += 1
            payout += share.subtotal - share.commission

        logger.info(
            "Partner payout recorded",
            partner_id=str(command.partner_id),
            settled_orders=settled_orders,
            payout=payout,
        )
        return {"settled_orders": settled_orders, "payout": payout}
