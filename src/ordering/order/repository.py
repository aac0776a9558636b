"""Repository for the Order aggregate.

Orders are looked up by their order number, never by any other identifier a
client supplies. Payment transitions are persisted through
``save_if_payment_status``, a compare-and-set on the stored payment status:
of two writers racing to move the same order out of ``pending``, only the
first succeeds and the second sees the order already moved on.

The status check rejects a writer that is already stale. Two writers that
both pass it are still ordered by the aggregate version, which the provider
checks when the unit of work commits: the later one fails with
``ExpectedVersionError`` and nothing it wrote is kept.
"""

from protean.exceptions import ExpectedVersionError, ObjectNotFoundError

from ordering.domain import ordering
from ordering.order.order import Order, PaymentStatus

# Rows fetched per round trip by reporting scans
SCAN_PAGE_SIZE = 500


@ordering.repository(part_of=Order)
class OrderRepository:
    def find_by_order_number(self, order_number: str) -> Order:
        """Load an order by its externally visible order number."""
        matches = self._dao.query.filter(order_number=order_number).all().items
        if not matches:
            raise ObjectNotFoundError(f"Order with order number `{order_number}` does not exist")
        return self.get(matches[0].id)

    def has_order_number(self, order_number: str) -> bool:
        return bool(self._dao.query.filter(order_number=order_number).all().items)

    def stored_payment_status(self, order_number: str) -> PaymentStatus | None:
        """The payment status as currently persisted, ignoring in-flight changes."""
        matches = self._dao.query.filter(order_number=order_number).all().items
        return PaymentStatus(matches[0].payment_status) if matches else None

    def save_if_payment_status(self, order: Order, expected: PaymentStatus) -> bool:
        """Persist ``order`` only if its stored payment status is still ``expected``.

        Returns False, without writing anything, when another writer got
        there first. Inside a unit of work the version check runs at commit
        and surfaces from there as ``ExpectedVersionError``.
        """
        still_expected = (
            self._dao.query.filter(
                order_number=order.order_number,
                payment_status=expected.value,
            )
            .all()
            .items
        )
        if not still_expected:
            return False

        try:
            self.add(order)
        except ExpectedVersionError:
            return False
        return True

    def placed_between(self, start, end) -> list[Order]:
        """Orders placed in the half-open window [start, end), oldest first."""
        return list(self._scan(created_at__gte=start, created_at__lt=end))

    def placed_before(self, cutoff) -> list[Order]:
        return list(self._scan(created_at__lt=cutoff))

    def _scan(self, **filters):
        """Yield every order matching ``filters``, a page at a time, oldest first."""
        offset = 0
        while True:
            records = (
                self._dao.query.filter(**filters)
                .order_by(["created_at", "id"])
                .offset(offset)
                .limit(SCAN_PAGE_SIZE)
                .all()
                .items
            )
            for record in records:
                yield self.get(record.id)
            if len(records) < SCAN_PAGE_SIZE:
                return
            offset += len(records)
