"""Partner settlement rollups — read-only views over the Order Ledger.

Everything here is computed on demand from orders and their partner
sub-orders. Nothing is written, and calling a function twice with the same
arguments over unchanged data returns the same answer.

Money is summed from sub-order ``subtotal`` and ``commission`` amounts. The
commission was fixed when each order was placed, so rate changes since then
never show up in these numbers.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.order.order import Order, OrderStatus

# Sub-orders whose parent is in one of these states still owe commission
# that has not been paid out
PENDING_SETTLEMENT_STATUSES = {
    OrderStatus.PENDING.value,
    OrderStatus.CONFIRMED.value,
    OrderStatus.PREPARING.value,
    OrderStatus.SHIPPED.value,
    OrderStatus.DELIVERED.value,
}

DAILY_SERIES_LIMIT = 30
TOP_PRODUCTS_LIMIT = 10


class Period(Enum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


PERIOD_LENGTHS = {
    Period.WEEK: timedelta(days=7),
    Period.MONTH: timedelta(days=30),
    Period.YEAR: timedelta(days=365),
}


@dataclass(frozen=True)
class Growth:
    """Relative change between two periods.

    ``is_new`` marks growth out of nothing: the previous period was zero and
    the current one is not. ``percent`` is then reported as 100.0.
    """

    percent: float
    is_new: bool = False


@dataclass(frozen=True)
class SettlementSummary:
    partner_id: str
    start: datetime
    end: datetime
    revenue: int = 0
    order_count: int = 0
    commission_total: int = 0
    pending_commission: int = 0
    realized_commission: int = 0

    @property
    def net_revenue(self) -> int:
        return self.revenue - self.commission_total

    @property
    def average_order_value(self) -> float:
        if not self.order_count:
            return 0.0
        return round(self.revenue / self.order_count, 2)


@dataclass(frozen=True)
class PeriodComparison:
    current: SettlementSummary
    previous: SettlementSummary
    revenue_growth: Growth
    order_growth: Growth
    commission_growth: Growth


@dataclass(frozen=True)
class DailyRevenue:
    day: str  # ISO date
    revenue: int
    order_count: int


@dataclass(frozen=True)
class TopProduct:
    product_id: str
    name: str
    quantity: int
    revenue: int


@dataclass(frozen=True)
class PartnerDashboard:
    partner_id: str
    period: Period
    comparison: PeriodComparison
    daily_revenue: list[DailyRevenue] = field(default_factory=list)
    top_products: list[TopProduct] = field(default_factory=list)


def growth(current: int | float, previous: int | float) -> Growth:
    """Percentage change from ``previous`` to ``current``, rounded to 0.1."""
    if previous == 0:
        if current == 0:
            return Growth(percent=0.0)
        return Growth(percent=100.0, is_new=True)
    return Growth(percent=round((current - previous) / previous * 100, 1))


def _aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


def _partner_shares(partner_id, start: datetime, end: datetime):
    """(order, partner_order) pairs for ``partner_id`` placed in [start, end)."""
    start, end = _aware(start), _aware(end)
    if end < start:
        raise ValidationError({"end": ["Window end must not precede its start"]})

    orders = current_domain.repository_for(Order).placed_between(start, end)
    for order in orders:
        placed_at = _aware(order.created_at)
        if not start <= placed_at < end:
            continue
        share = next((po for po in order.partner_orders if str(po.partner_id) == str(partner_id)), None)
        if share is not None:
            yield order, share


def summarize(partner_id, start: datetime, end: datetime) -> SettlementSummary:
    """Revenue and commission for one partner over orders placed in [start, end).

    ``pending_commission`` covers sub-orders not yet paid out whose order is
    still live; ``realized_commission`` covers sub-orders already settled.
    Cancelled orders count towards revenue and the commission total only.
    """
    revenue = order_count = commission_total = pending = realized = 0
    for order, share in _partner_shares(partner_id, start, end):
        revenue += share.subtotal
        order_count += 1
        commission_total += share.commission
        if share.is_settled:
            realized += share.commission
        elif order.status in PENDING_SETTLEMENT_STATUSES:
            pending += share.commission

    return SettlementSummary(
        partner_id=str(partner_id),
        start=_aware(start),
        end=_aware(end),
        revenue=revenue,
        order_count=order_count,
        commission_total=commission_total,
        pending_commission=pending,
        realized_commission=realized,
    )


def period_window(period: Period | str, now: datetime | None = None) -> tuple[datetime, datetime]:
    """The window of ``period`` length ending at ``now``."""
    period = Period(period)
    end = _aware(now or datetime.now(UTC))
    return end - PERIOD_LENGTHS[period], end


def compare_periods(partner_id, period: Period | str = Period.MONTH, now: datetime | None = None) -> PeriodComparison:
    """Current period against the immediately preceding window of equal length."""
    start, end = period_window(period, now)
    previous_start = start - (end - start)

    current = summarize(partner_id, start, end)
    previous = summarize(partner_id, previous_start, start)
    return PeriodComparison(
        current=current,
        previous=previous,
        revenue_growth=growth(current.revenue, previous.revenue),
        order_growth=growth(current.order_count, previous.order_count),
        commission_growth=growth(current.commission_total, previous.commission_total),
    )


def daily_revenue(partner_id, start: datetime, end: datetime) -> list[DailyRevenue]:
    """Revenue per calendar day (UTC), most recent days last, capped at 30 days."""
    revenue: dict[str, int] = defaultdict(int)
    counts: dict[str, int] = defaultdict(int)
    for order, share in _partner_shares(partner_id, start, end):
        day = _aware(order.created_at).astimezone(UTC).date().isoformat()
        revenue[day] += share.subtotal
        counts[day] += 1

    days = sorted(revenue)[-DAILY_SERIES_LIMIT:]
    return [DailyRevenue(day=day, revenue=revenue[day], order_count=counts[day]) for day in days]


def top_products(partner_id, start: datetime, end: datetime) -> list[TopProduct]:
    """The partner's best sellers by quantity, ties broken by revenue."""
    quantities: dict[str, int] = defaultdict(int)
    revenues: dict[str, int] = defaultdict(int)
    names: dict[str, str] = {}
    for order, _share in _partner_shares(partner_id, start, end):
        for item in order.items_for(partner_id):
            product_id = str(item.product_id)
            quantities[product_id] += item.quantity
            revenues[product_id] += item.line_total
            names.setdefault(product_id, item.name)

    ranked = sorted(quantities, key=lambda pid: (-quantities[pid], -revenues[pid], pid))
    return [
        TopProduct(product_id=pid, name=names[pid], quantity=quantities[pid], revenue=revenues[pid])
        for pid in ranked[:TOP_PRODUCTS_LIMIT]
    ]


def partner_dashboard(partner_id, period: Period | str = Period.MONTH, now: datetime | None = None) -> PartnerDashboard:
    """Everything a partner's settlement dashboard shows for one period."""
    period = Period(period)
    comparison = compare_periods(partner_id, period, now)
    start, end = comparison.current.start, comparison.current.end
    return PartnerDashboard(
        partner_id=str(partner_id),
        period=period,
        comparison=comparison,
        daily_revenue=daily_revenue(partner_id, start, end),
        top_products=top_products(partner_id, start, end),
    )
