"""Tests for fulfilment, cancellation and settlement transitions."""

import pytest
from ordering.order.events import OrderCancelled, OrderStatusAdvanced, PartnerOrderAdvanced, PartnerOrderSettled
from ordering.order.order import Order, OrderStatus, can_transition
from ordering.order.partners import PartnerTerms
from protean.exceptions import ValidationError

TERMS = {
    "partner-1": PartnerTerms(name="Atelier One", commission_rate=10.0),
    "partner-2": PartnerTerms(name="Tote Co", commission_rate=20.0),
}


def _make_order():
    order = Order.create(
        buyer_id="buyer-001",
        items_data=[
            {"product_id": "p1", "partner_id": "partner-1", "name": "Shirt", "price": 20000, "quantity": 1},
            {"product_id": "p2", "partner_id": "partner-2", "name": "Tote", "price": 10000, "quantity": 1},
        ],
        partner_terms=TERMS,
    )
    order._events.clear()
    return order


def _make_paid_order():
    order = _make_order()
    order.confirm_payment("T-0001", "CARD")
    order._events.clear()
    return order


class TestTransitionTable:
    @pytest.mark.parametrize(
        "current, target",
        [
            ("pending", "confirmed"),
            ("confirmed", "preparing"),
            ("preparing", "shipped"),
            ("shipped", "delivered"),
            ("pending", "cancelled"),
            ("shipped", "cancelled"),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(OrderStatus(current), OrderStatus(target))

    @pytest.mark.parametrize(
        "current, target",
        [
            ("pending", "shipped"),
            ("confirmed", "delivered"),
            ("delivered", "cancelled"),
            ("cancelled", "confirmed"),
            ("shipped", "preparing"),
        ],
    )
    def test_not_allowed(self, current, target):
        assert not can_transition(OrderStatus(current), OrderStatus(target))


class TestAdvanceStatus:
    def test_single_step(self):
        order = _make_paid_order()
        order.advance_status("preparing")
        assert order.status == OrderStatus.PREPARING.value

    def test_skipping_a_step_is_rejected(self):
        order = _make_paid_order()
        with pytest.raises(ValidationError):
            order.advance_status("shipped")

    def test_requires_payment(self):
        order = _make_order()
        order.status = OrderStatus.CONFIRMED.value
        with pytest.raises(ValidationError):
            order.advance_status("preparing")

    def test_cancel_is_not_an_advance(self):
        order = _make_paid_order()
        with pytest.raises(ValidationError):
            order.advance_status("cancelled")

    def test_drags_lagging_partner_orders(self):
        order = _make_paid_order()
        order.advance_status("preparing")
        order.advance_status("shipped")
        assert {po.status for po in order.partner_orders} == {OrderStatus.SHIPPED.value}
        assert all(po.shipped_at is not None for po in order.partner_orders)

    def test_raises_event(self):
        order = _make_paid_order()
        order.advance_status("preparing")
        event = order._events[-1]
        assert isinstance(event, OrderStatusAdvanced)
        assert event.previous_status == "confirmed"
        assert event.new_status == "preparing"


class TestAdvancePartnerOrder:
    def test_partner_moves_independently(self):
        order = _make_paid_order()
        order.advance_partner_order("partner-1", "preparing")
        assert order.partner_order_for("partner-1").status == OrderStatus.PREPARING.value
        assert order.partner_order_for("partner-2").status == OrderStatus.CONFIRMED.value
        assert order.status == OrderStatus.CONFIRMED.value

    def test_shipping_records_tracking(self):
        order = _make_paid_order()
        order.advance_partner_order("partner-1", "preparing")
        order.advance_partner_order("partner-1", "shipped", tracking_number="TRK-1")
        share = order.partner_order_for("partner-1")
        assert share.tracking_number == "TRK-1"
        assert share.shipped_at is not None

    def test_partner_cannot_cancel(self):
        order = _make_paid_order()
        with pytest.raises(ValidationError):
            order.advance_partner_order("partner-1", "cancelled")

    def test_unknown_partner(self):
        order = _make_paid_order()
        with pytest.raises(ValidationError):
            order.advance_partner_order("partner-9", "preparing")

    def test_raises_event(self):
        order = _make_paid_order()
        order.advance_partner_order("partner-2", "preparing")
        event = order._events[-1]
        assert isinstance(event, PartnerOrderAdvanced)
        assert event.partner_id == "partner-2"

    def test_partner_ahead_is_not_moved_back(self):
        order = _make_paid_order()
        order.advance_partner_order("partner-1", "preparing")
        order.advance_partner_order("partner-1", "shipped")
        order.advance_status("preparing")
        assert order.partner_order_for("partner-1").status == OrderStatus.SHIPPED.value
        assert order.partner_order_for("partner-2").status == OrderStatus.PREPARING.value


class TestCancel:
    def test_cancels_order_and_shares(self):
        order = _make_order()
        order.cancel("Changed my mind", "buyer")
        assert order.status == OrderStatus.CANCELLED.value
        assert {po.status for po in order.partner_orders} == {OrderStatus.CANCELLED.value}

    def test_delivered_share_keeps_its_status(self):
        order = _make_paid_order()
        for status in ("preparing", "shipped", "delivered"):
            order.advance_partner_order("partner-1", status)
        order.cancel("Partner two out of stock", "admin")
        assert order.partner_order_for("partner-1").status == OrderStatus.DELIVERED.value
        assert order.partner_order_for("partner-2").status == OrderStatus.CANCELLED.value

    def test_cancelled_is_terminal(self):
        order = _make_order()
        order.cancel("Changed my mind", "buyer")
        with pytest.raises(ValidationError):
            order.cancel("Again", "buyer")

    def test_raises_event(self):
        order = _make_order()
        order.cancel("Changed my mind", "buyer")
        event = order._events[-1]
        assert isinstance(event, OrderCancelled)
        assert event.cancelled_by == "buyer"


class TestSettlePartnerOrder:
    def _delivered(self):
        order = _make_paid_order()
        for status in ("preparing", "shipped", "delivered"):
            order.advance_status(status)
        order._events.clear()
        return order

    def test_marks_share_settled(self):
        order = self._delivered()
        order.settle_partner_order("partner-1")
        assert order.partner_order_for("partner-1").is_settled
        assert not order.partner_order_for("partner-2").is_settled

    def test_raises_event_with_commission(self):
        order = self._delivered()
        order.settle_partner_order("partner-2")
        event = order._events[-1]
        assert isinstance(event, PartnerOrderSettled)
        assert event.subtotal == 10000
        assert event.commission == 2000

    def test_cannot_settle_twice(self):
        order = self._delivered()
        order.settle_partner_order("partner-1")
        with pytest.raises(ValidationError):
            order.settle_partner_order("partner-1")

    def test_only_delivered_shares_settle(self):
        order = _make_paid_order()
        with pytest.raises(ValidationError):
            order.settle_partner_order("partner-1")
