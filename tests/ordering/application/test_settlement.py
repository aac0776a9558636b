"""Application tests for partner settlement rollups and payouts."""

import json
from datetime import UTC, datetime, timedelta

from ordering.order.cancellation import CancelOrder
from ordering.order.fulfillment import AdvanceOrderStatus
from ordering.order.order import Order
from ordering.order.partners import InMemoryPartnerDirectory, set_partner_directory
from ordering.order import repository as order_repository
from ordering.order.payment import ConfirmOrderPayment
from ordering.order.placement import PlaceOrder
from ordering.settlement.aggregator import compare_periods, partner_dashboard, summarize
from ordering.settlement.payout import SettlePartner
from protean import current_domain

NOW = datetime(2026, 6, 30, 12, 0, tzinfo=UTC)


def _place(order_number, placed_at, items):
    current_domain.process(
        PlaceOrder(
            buyer_id="buyer-001",
            order_number=order_number,
            items=json.dumps(items),
            placed_at=placed_at,
        ),
        asynchronous=False,
    )
    return order_number


def _pay(order_number):
    current_domain.process(
        ConfirmOrderPayment(order_number=order_number, transaction_id=f"T-{order_number}"),
        asynchronous=False,
    )


def _deliver(order_number):
    for status in ("preparing", "shipped", "delivered"):
        current_domain.process(AdvanceOrderStatus(order_number=order_number, status=status), asynchronous=False)


def _item(product_id, partner_id, price, quantity=1):
    return {"product_id": product_id, "partner_id": partner_id, "name": product_id, "price": price, "quantity": quantity}


def _seed():
    set_partner_directory(InMemoryPartnerDirectory(default_rate=10.0))
    _place("ORD-S-1", NOW - timedelta(days=2), [_item("shirt", "p1", 30000), _item("tote", "p2", 10000)])
    _place("ORD-S-2", NOW - timedelta(days=5), [_item("shirt", "p1", 30000, 2)])
    _place("ORD-S-3", NOW - timedelta(days=40), [_item("socks", "p1", 5000)])
    _pay("ORD-S-1")
    _pay("ORD-S-2")


class TestSummarize:
    def test_revenue_and_commission_for_window(self):
        _seed()
        summary = summarize("p1", NOW - timedelta(days=30), NOW)
        assert summary.revenue == 90000
        assert summary.order_count == 2
        assert summary.commission_total == 9000

    def test_only_the_partners_share_counts(self):
        _seed()
        summary = summarize("p2", NOW - timedelta(days=30), NOW)
        assert summary.revenue == 10000
        assert summary.commission_total == 1000

    def test_window_end_is_exclusive(self):
        _seed()
        placed = NOW - timedelta(days=2)
        assert summarize("p1", placed - timedelta(days=1), placed).order_count == 0
        assert summarize("p1", placed, placed + timedelta(seconds=1)).order_count == 1

    def test_empty_window_is_all_zeros(self):
        summary = summarize("p1", NOW - timedelta(days=7), NOW)
        assert summary.revenue == 0
        assert summary.order_count == 0
        assert summary.commission_total == 0
        assert summary.pending_commission == 0
        assert summary.realized_commission == 0
        assert summary.average_order_value == 0.0

    def test_unknown_partner_is_all_zeros(self):
        _seed()
        assert summarize("p-unknown", NOW - timedelta(days=365), NOW).revenue == 0

    def test_live_orders_are_pending_settlement(self):
        _seed()
        summary = summarize("p1", NOW - timedelta(days=30), NOW)
        assert summary.pending_commission == 9000
        assert summary.realized_commission == 0

    def test_cancelled_orders_are_not_pending(self):
        _seed()
        current_domain.process(
            CancelOrder(order_number="ORD-S-3", reason="Changed my mind", cancelled_by="buyer"),
            asynchronous=False,
        )
        summary = summarize("p1", NOW - timedelta(days=60), NOW)
        assert summary.commission_total == 9500
        assert summary.pending_commission == 9000

    def test_naive_bounds_are_read_as_utc(self):
        _seed()
        naive_now = NOW.replace(tzinfo=None)
        assert summarize("p1", naive_now - timedelta(days=30), naive_now).revenue == 90000

    def test_is_read_only(self):
        _seed()
        before = current_domain.repository_for(Order).find_by_order_number("ORD-S-1")
        summarize("p1", NOW - timedelta(days=30), NOW)
        after = current_domain.repository_for(Order).find_by_order_number("ORD-S-1")
        assert before.updated_at == after.updated_at


class TestComparePeriods:
    def test_previous_window_is_adjacent(self):
        _seed()
        comparison = compare_periods("p1", "month", NOW)
        assert comparison.previous.end == comparison.current.start
        assert comparison.current.revenue == 90000
        assert comparison.previous.revenue == 5000

    def test_growth_from_nothing_is_flagged(self):
        _seed()
        comparison = compare_periods("p2", "month", NOW)
        assert comparison.revenue_growth.is_new
        assert comparison.revenue_growth.percent == 100.0

    def test_growth_percentage(self):
        _seed()
        comparison = compare_periods("p1", "month", NOW)
        assert comparison.order_growth.percent == 100.0
        assert not comparison.order_growth.is_new


class TestDashboard:
    def test_daily_series_and_top_products(self):
        _seed()
        dashboard = partner_dashboard("p1", "month", NOW)
        assert [day.revenue for day in dashboard.daily_revenue] == [60000, 30000]
        assert dashboard.top_products[0].product_id == "shirt"
        assert dashboard.top_products[0].quantity == 3
        assert dashboard.top_products[0].revenue == 90000


class TestPayout:
    def test_settles_delivered_shares(self):
        _seed()
        _deliver("ORD-S-1")

        result = current_domain.process(SettlePartner(partner_id="p1", placed_before=NOW), asynchronous=False)

        assert result == {"settled_orders": 1, "payout": 27000}
        summary = summarize("p1", NOW - timedelta(days=30), NOW)
        assert summary.realized_commission == 3000
        assert summary.pending_commission == 6000

    def test_repeated_payout_pays_nothing(self):
        _seed()
        _deliver("ORD-S-1")
        current_domain.process(SettlePartner(partner_id="p1", placed_before=NOW), asynchronous=False)

        again = current_domain.process(SettlePartner(partner_id="p1", placed_before=NOW), asynchronous=False)

        assert again == {"settled_orders": 0, "payout": 0}


class TestScansSpanSeveralPages:
    """Rollups read every matching order, however many pages that takes."""

    def _seed_many(self, monkeypatch):
        monkeypatch.setattr(order_repository, "SCAN_PAGE_SIZE", 2)
        set_partner_directory(InMemoryPartnerDirectory(default_rate=10.0))
        for day in range(5):
            order_number = _place(f"ORD-P2-{day}", NOW - timedelta(days=20 - day), [_item("tote", "p2", 1000)])
            _pay(order_number)
        _place("ORD-P1-NEW", NOW - timedelta(days=1), [_item("shirt", "p1", 1000)])
        _pay("ORD-P1-NEW")

    def test_summary_sees_the_newest_order(self, monkeypatch):
        self._seed_many(monkeypatch)
        summary = summarize("p1", NOW - timedelta(days=30), NOW)
        assert summary.revenue == 1000
        assert summary.order_count == 1
        assert summarize("p2", NOW - timedelta(days=30), NOW).order_count == 5

    def test_payout_reaches_the_newest_order(self, monkeypatch):
        self._seed_many(monkeypatch)
        _deliver("ORD-P1-NEW")

        result = current_domain.process(SettlePartner(partner_id="p1", placed_before=NOW), asynchronous=False)

        assert result == {"settled_orders": 1, "payout": 900}

    def test_scan_returns_each_order_once_oldest_first(self, monkeypatch):
        self._seed_many(monkeypatch)
        orders = current_domain.repository_for(Order).placed_before(NOW)
        assert [o.order_number for o in orders] == [f"ORD-P2-{day}" for day in range(5)] + ["ORD-P1-NEW"]
