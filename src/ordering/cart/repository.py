from ordering.cart.cart import Cart
from ordering.domain import ordering


@ordering.repository(part_of=Cart)
class CartRepository:
    def find_by_buyer(self, buyer_id) -> Cart | None:
        """The buyer's cart, or None if they have never had one."""
        matches = self._dao.query.filter(buyer_id=str(buyer_id)).all().items
        return self.get(matches[0].id) if matches else None
