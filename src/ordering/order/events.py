"""Domain events for the Order aggregate.

All events are versioned, immutable facts representing state changes in the
Order Ledger. Amounts are integer currency units.
"""

from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A multi-vendor order was placed and split into partner sub-orders."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    buyer_id = Identifier(required=True)
    total_amount = Integer(required=True)
    partner_count = Integer(required=True)
    total_commission = Integer(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentConfirmed:
    """The gateway approved the payment; funds are captured and the order is confirmed."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    buyer_id = Identifier(required=True)
    amount = Integer(required=True)
    transaction_id = String(required=True)
    payment_method = String()
    paid_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentDeclined:
    """The gateway declined the payment for this attempt."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    reason = String(required=True)
    declined_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentRefunded:
    """A captured payment was cancelled at the gateway."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    amount = Integer(required=True)
    reason = String(required=True)
    refunded_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusAdvanced:
    """The order moved one step forward along the fulfilment path."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PartnerOrderAdvanced:
    """One partner's share of an order moved forward independently."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    partner_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    tracking_number = String()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    reason = String(required=True)
    cancelled_by = String(required=True)
    payment_status = String(required=True)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PartnerOrderSettled:
    """A delivered sub-order's proceeds, net of commission, were paid out."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    partner_id = Identifier(required=True)
    subtotal = Integer(required=True)
    commission = Integer(required=True)
    settled_at = DateTime(required=True)
