"""Shopping Cart aggregate (CQRS) — one persistent cart per buyer.

The cart keeps running totals alongside its line items. Every mutation
recomputes them from the items, so ``total_items`` is always the sum of
quantities and ``total_amount`` the sum of price times quantity.

After an order is paid, the products it bought are pruned from the cart by
product id. Pruning leaves every other item untouched and is a no-op on a
cart that no longer holds any of those products.
"""

import json
from datetime import UTC, datetime

from protean import atomic_change
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer

from ordering.cart.events import (
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    PurchasedItemsPruned,
)
from ordering.domain import ordering

MAX_CART_QUANTITY = 99


@ordering.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1, max_value=MAX_CART_QUANTITY)
    price = Integer(required=True, min_value=0)  # Unit price when added
    added_at = DateTime()

    @property
    def line_total(self) -> int:
        return self.price * self.quantity


@ordering.aggregate
class Cart:
    buyer_id = Identifier(required=True, unique=True)
    items = HasMany(CartItem)
    total_items = Integer(default=0, min_value=0)
    total_amount = Integer(default=0, min_value=0)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, buyer_id):
        now = datetime.now(UTC)
        return cls(
            buyer_id=buyer_id,
            total_items=0,
            total_amount=0,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def item_for(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def product_ids(self) -> set[str]:
        return {str(item.product_id) for item in self.items}

    def _recalculate_totals(self) -> None:
        self.total_items = sum(item.quantity for item in self.items)
        self.total_amount = sum(item.line_total for item in self.items)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity, price):
        """Add a product to the cart, or add to its quantity if already present."""
        existing = self.item_for(product_id)
        new_quantity = quantity + (existing.quantity if existing else 0)
        if new_quantity > MAX_CART_QUANTITY:
            raise ValidationError({"quantity": [f"Quantity cannot exceed {MAX_CART_QUANTITY}"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            if existing:
                existing.quantity = new_quantity
                existing.price = price
            else:
                self.add_items(
                    CartItem(
                        product_id=product_id,
                        quantity=quantity,
                        price=price,
                        added_at=now,
                    )
                )
            self._recalculate_totals()
            self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                buyer_id=str(self.buyer_id),
                product_id=str(product_id),
                quantity=new_quantity,
                price=price,
            )
        )

    def update_item_quantity(self, product_id, new_quantity):
        """Set the quantity of a product already in the cart."""
        if not 1 <= new_quantity <= MAX_CART_QUANTITY:
            raise ValidationError({"quantity": [f"Quantity must be between 1 and {MAX_CART_QUANTITY}"]})

        item = self.item_for(product_id)
        if item is None:
            raise ValidationError({"product_id": ["Product not found in cart"]})

        previous_quantity = item.quantity
        with atomic_change(self):
            item.quantity = new_quantity
            self._recalculate_totals()
            self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_item(self, product_id):
        """Remove a product from the cart."""
        item = self.item_for(product_id)
        if item is None:
            raise ValidationError({"product_id": ["Product not found in cart"]})

        with atomic_change(self):
            self.remove_items(item)
            self._recalculate_totals()
            self.updated_at = datetime.now(UTC)

        self.raise_(CartItemRemoved(cart_id=str(self.id), product_id=str(product_id)))

    # -------------------------------------------------------------------
    # Post-purchase reconciliation
    # -------------------------------------------------------------------
    def prune_purchased(self, product_ids, order_number) -> list[str]:
        """Remove exactly the items whose product is in ``product_ids``.

        Returns the product ids that were removed, in cart order. An empty
        list means the cart was already reconciled and nothing changed.
        """
        purchased = {str(product_id) for product_id in product_ids}
        to_remove = [item for item in self.items if str(item.product_id) in purchased]
        if not to_remove:
            return []

        with atomic_change(self):
            for item in to_remove:
                self.remove_items(item)
            self._recalculate_totals()
            self.updated_at = datetime.now(UTC)

        removed = [str(item.product_id) for item in to_remove]
        self.raise_(
            PurchasedItemsPruned(
                cart_id=str(self.id),
                buyer_id=str(self.buyer_id),
                order_number=order_number,
                removed_product_ids=json.dumps(removed),
                remaining_items=self.total_items,
                total_amount=self.total_amount,
            )
        )
        return removed
