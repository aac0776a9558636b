"""Order aggregate (CQRS) — the Order Ledger of the marketplace.

An Order is placed at checkout with one line item per product and is split
into one PartnerOrder per vendor. Each PartnerOrder carries the vendor's
subtotal and the commission owed on it, computed from the commission rate in
force when the order was placed. That rate is stored on the sub-order and is
never re-read afterwards.

Two independent state machines live on the aggregate:

Order status (fulfilment):
    PENDING → CONFIRMED → PREPARING → SHIPPED → DELIVERED
    any non-terminal state → CANCELLED

Payment status:
    PENDING → COMPLETED → REFUNDED
    PENDING → FAILED

The order number is the correlation key with the payment gateway and the
idempotency key for every gateway callback.
"""

import math
import secrets
import time
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from ordering.domain import ordering
from ordering.order.events import (
    OrderCancelled,
    OrderPlaced,
    OrderStatusAdvanced,
    PartnerOrderAdvanced,
    PartnerOrderSettled,
    PaymentConfirmed,
    PaymentDeclined,
    PaymentRefunded,
)

MAX_ITEM_QUANTITY = 99


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class CancellationActor(Enum):
    BUYER = "buyer"
    ADMIN = "admin"
    SYSTEM = "system"


# Fulfilment state machine, shared by orders and partner sub-orders
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.COMPLETED: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),  # Terminal
    PaymentStatus.REFUNDED: set(),  # Terminal
}

# Position of each status along the forward fulfilment path
_PROGRESSION = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
]

TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}


def generate_order_number() -> str:
    """Return a fresh order number like ``ORD-LZ8K2M1Q-7F3KD``."""
    timestamp = _to_base36(int(time.time() * 1000))
    suffix = secrets.token_hex(3)[:5]
    return f"ORD-{timestamp}-{suffix}".upper()


def _to_base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    encoded = ""
    while number:
        number, remainder = divmod(number, 36)
        encoded = digits[remainder] + encoded
    return encoded or "0"


def compute_commission(subtotal: int, commission_rate: float) -> int:
    """Commission owed on ``subtotal`` at ``commission_rate`` percent, rounded down."""
    return math.floor(Decimal(subtotal) * Decimal(str(commission_rate)) / 100)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in _VALID_TRANSITIONS.get(current, set())


def _parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError({"status": [f"Unknown order status: {value}"]}) from None


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A purchased product, priced at checkout and attributed to one partner."""

    product_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    price = Integer(required=True, min_value=0)
    quantity = Integer(required=True, min_value=1, max_value=MAX_ITEM_QUANTITY)

    @property
    def line_total(self) -> int:
        return self.price * self.quantity


@ordering.entity(part_of="Order")
class PartnerOrder:
    """The slice of an order attributable to one partner.

    The commission is an amount, not a rate: it was computed once at
    placement from ``commission_rate``, which is kept only for audit.
    A sub-order follows its parent through the fulfilment lifecycle but may
    run ahead of it, e.g. one partner ships before another.
    """

    partner_id = Identifier(required=True)
    partner_name = String(max_length=255)
    subtotal = Integer(required=True, min_value=0)
    commission_rate = Float(required=True, min_value=0.0)
    commission = Integer(required=True, min_value=0)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    tracking_number = String(max_length=255)
    shipped_at = DateTime()
    delivered_at = DateTime()
    settled_at = DateTime()

    @property
    def is_settled(self) -> bool:
        return self.settled_at is not None


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=50, unique=True)
    buyer_id = Identifier(required=True)
    items = HasMany(OrderItem)
    partner_orders = HasMany(PartnerOrder)
    total_amount = Integer(required=True, min_value=0)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = String(max_length=50)
    transaction_id = String(max_length=255)
    payment_failure_reason = String(max_length=500)
    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=50)
    created_at = DateTime()
    updated_at = DateTime()
    paid_at = DateTime()
    cart_reconciled_at = DateTime()

    @invariant.post
    def completed_payment_must_carry_a_transaction(self):
        if self.payment_status == PaymentStatus.COMPLETED.value and not self.transaction_id:
            raise ValidationError({"transaction_id": ["A completed payment must reference a gateway transaction"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        buyer_id,
        items_data,
        partner_terms,
        order_number=None,
        payment_method=None,
        placed_at=None,
    ):
        """Place a new order and split it into partner sub-orders.

        Args:
            buyer_id: The buyer placing the order.
            items_data: List of dicts with product_id, partner_id, name,
                        price and quantity.
            partner_terms: Mapping of partner_id to ``PartnerTerms``, the
                           partner's name and commission rate right now.
            order_number: Externally visible order number. Generated when
                          omitted.
            payment_method: The payment method chosen at checkout.
            placed_at: Placement time, defaults to now.
        """
        if not items_data:
            raise ValidationError({"items": ["An order must contain at least one item"]})

        now = placed_at or datetime.now(UTC)
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        items = [
            OrderItem(
                product_id=item["product_id"],
                partner_id=item.get("partner_id"),
                name=item["name"],
                price=item["price"],
                quantity=item["quantity"],
            )
            for item in items_data
        ]

        # Group line totals by partner, keeping first-seen order
        subtotals: dict[str, int] = {}
        for item in items:
            subtotals[str(item.partner_id)] = subtotals.get(str(item.partner_id), 0) + item.line_total

        partner_orders = []
        for partner_id, subtotal in subtotals.items():
            terms = partner_terms[partner_id]
            partner_orders.append(
                PartnerOrder(
                    partner_id=partner_id,
                    partner_name=terms.name,
                    subtotal=subtotal,
                    commission_rate=terms.commission_rate,
                    commission=compute_commission(subtotal, terms.commission_rate),
                    status=OrderStatus.PENDING.value,
                )
            )

        order = cls(
            order_number=order_number or generate_order_number(),
            buyer_id=buyer_id,
            items=items,
            partner_orders=partner_orders,
            total_amount=sum(item.line_total for item in items),
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_method=payment_method,
            created_at=now,
            updated_at=now,
        )
        order.assert_commission_balanced()

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                buyer_id=str(order.buyer_id),
                total_amount=order.total_amount,
                partner_count=len(partner_orders),
                total_commission=sum(po.commission for po in partner_orders),
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.COMPLETED.value

    def product_ids(self) -> set[str]:
        return {str(item.product_id) for item in self.items}

    def items_for(self, partner_id) -> list:
        """Line items belonging to one partner's sub-order."""
        return [item for item in self.items if str(item.partner_id) == str(partner_id)]

    def partner_order_for(self, partner_id):
        partner_order = next((po for po in self.partner_orders if str(po.partner_id) == str(partner_id)), None)
        if partner_order is None:
            raise ValidationError({"partner_id": ["Partner has no share in this order"]})
        return partner_order

    def is_commission_balanced(self) -> bool:
        """Partner subtotals add up to the order total, and each matches its items."""
        if sum(po.subtotal for po in self.partner_orders) != self.total_amount:
            return False
        return all(
            po.subtotal == sum(item.line_total for item in self.items_for(po.partner_id))
            for po in self.partner_orders
        )

    def assert_commission_balanced(self) -> None:
        if not self.is_commission_balanced():
            raise ValidationError({"partner_orders": ["Partner subtotals do not add up to the order total"]})

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if not can_transition(current, target_status):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _assert_can_transition_payment(self, target_status: PaymentStatus) -> None:
        current = PaymentStatus(self.payment_status)
        if target_status not in _PAYMENT_TRANSITIONS.get(current, set()):
            raise ValidationError(
                {"payment_status": [f"Cannot transition payment from {current.value} to {target_status.value}"]}
            )

    def _catch_up_partner_orders(self, target_status: OrderStatus, now: datetime) -> None:
        """Move sub-orders that are behind the parent up to its status."""
        target_rank = _PROGRESSION.index(target_status)
        for partner_order in self.partner_orders:
            current = OrderStatus(partner_order.status)
            if current in TERMINAL_STATUSES or _PROGRESSION.index(current) >= target_rank:
                continue
            partner_order.status = target_status.value
            if target_status == OrderStatus.SHIPPED:
                partner_order.shipped_at = now
            elif target_status == OrderStatus.DELIVERED:
                partner_order.delivered_at = now

    # -------------------------------------------------------------------
    # Payment lifecycle
    # -------------------------------------------------------------------
    def confirm_payment(self, transaction_id, payment_method=None):
        """Record the gateway's approval: the payment is captured and the order confirmed."""
        self._assert_can_transition_payment(PaymentStatus.COMPLETED)
        self._assert_can_transition(OrderStatus.CONFIRMED)

        now = datetime.now(UTC)
        self.transaction_id = transaction_id
        if payment_method:
            self.payment_method = payment_method
        self.payment_status = PaymentStatus.COMPLETED.value
        self.status = OrderStatus.CONFIRMED.value
        self.paid_at = now
        self.updated_at = now
        self._catch_up_partner_orders(OrderStatus.CONFIRMED, now)

        self.raise_(
            PaymentConfirmed(
                order_id=str(self.id),
                order_number=self.order_number,
                buyer_id=str(self.buyer_id),
                amount=self.total_amount,
                transaction_id=transaction_id,
                payment_method=self.payment_method,
                paid_at=now,
            )
        )

    def record_payment_decline(self, reason):
        """Record that the gateway declined the payment. The order stays pending."""
        self._assert_can_transition_payment(PaymentStatus.FAILED)

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.FAILED.value
        self.payment_failure_reason = reason
        self.updated_at = now

        self.raise_(
            PaymentDeclined(
                order_id=str(self.id),
                order_number=self.order_number,
                reason=reason,
                declined_at=now,
            )
        )

    def mark_cart_reconciled(self):
        """Record that the buyer's cart was pruned for this order. Happens once."""
        if not self.is_paid:
            raise ValidationError({"payment_status": ["Only paid orders are reconciled against the cart"]})
        if self.cart_reconciled_at is None:
            self.cart_reconciled_at = datetime.now(UTC)

    @property
    def is_cart_reconciled(self) -> bool:
        return self.cart_reconciled_at is not None

    def refund_payment(self, reason):
        """Record a gateway-side cancellation of a captured payment.

        The order is cancelled along with it unless it was already delivered.
        """
        self._assert_can_transition_payment(PaymentStatus.REFUNDED)

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.REFUNDED.value
        self.updated_at = now
        self.raise_(
            PaymentRefunded(
                order_id=str(self.id),
                order_number=self.order_number,
                amount=self.total_amount,
                reason=reason,
                refunded_at=now,
            )
        )

        if OrderStatus(self.status) not in TERMINAL_STATUSES:
            self.cancel(reason=reason, cancelled_by=CancellationActor.SYSTEM.value)

    # -------------------------------------------------------------------
    # Fulfilment
    # -------------------------------------------------------------------
    def advance_status(self, target_status):
        """Advance the order one step along the fulfilment path."""
        target = _parse_status(target_status)
        if target == OrderStatus.CANCELLED:
            raise ValidationError({"status": ["Use cancel() to cancel an order"]})
        if not self.is_paid:
            raise ValidationError({"payment_status": ["Only paid orders can progress through fulfilment"]})
        self._assert_can_transition(target)

        now = datetime.now(UTC)
        previous = self.status
        self.status = target.value
        self.updated_at = now
        self._catch_up_partner_orders(target, now)

        self.raise_(
            OrderStatusAdvanced(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=previous,
                new_status=target.value,
                changed_at=now,
            )
        )

    def advance_partner_order(self, partner_id, target_status, tracking_number=None):
        """Advance one partner's sub-order independently of the others."""
        target = _parse_status(target_status)
        if target == OrderStatus.CANCELLED:
            raise ValidationError({"status": ["Partners cannot cancel their share of an order"]})
        if not self.is_paid:
            raise ValidationError({"payment_status": ["Only paid orders can progress through fulfilment"]})

        partner_order = self.partner_order_for(partner_id)
        current = OrderStatus(partner_order.status)
        if not can_transition(current, target):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target.value}"]})

        now = datetime.now(UTC)
        partner_order.status = target.value
        if tracking_number:
            partner_order.tracking_number = tracking_number
        if target == OrderStatus.SHIPPED:
            partner_order.shipped_at = now
        elif target == OrderStatus.DELIVERED:
            partner_order.delivered_at = now
        self.updated_at = now

        self.raise_(
            PartnerOrderAdvanced(
                order_id=str(self.id),
                order_number=self.order_number,
                partner_id=str(partner_id),
                previous_status=current.value,
                new_status=target.value,
                tracking_number=partner_order.tracking_number,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def cancel(self, reason, cancelled_by):
        """Cancel the order and every partner sub-order that has not finished."""
        self._assert_can_transition(OrderStatus.CANCELLED)

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancelled_by = cancelled_by
        self.updated_at = now
        for partner_order in self.partner_orders:
            if OrderStatus(partner_order.status) not in TERMINAL_STATUSES:
                partner_order.status = OrderStatus.CANCELLED.value

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                reason=reason,
                cancelled_by=cancelled_by,
                payment_status=self.payment_status,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Settlement
    # -------------------------------------------------------------------
    def settle_partner_order(self, partner_id, settled_at=None):
        """Mark a delivered partner sub-order as paid out to the partner."""
        if not self.is_paid:
            raise ValidationError({"payment_status": ["Only paid orders can be settled"]})

        partner_order = self.partner_order_for(partner_id)
        if partner_order.status != OrderStatus.DELIVERED.value:
            raise ValidationError({"status": ["Only delivered sub-orders can be settled"]})
        if partner_order.is_settled:
            raise ValidationError({"settled_at": ["Sub-order has already been settled"]})

        now = settled_at or datetime.now(UTC)
        partner_order.settled_at = now
        self.updated_at = now

        self.raise_(
            PartnerOrderSettled(
                order_id=str(self.id),
                order_number=self.order_number,
                partner_id=str(partner_id),
                subtotal=partner_order.subtotal,
                commission=partner_order.commission,
                settled_at=now,
            )
        )
