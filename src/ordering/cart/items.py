"""Cart item management — commands and handler.

Carts are created lazily on the first item a buyer adds.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from ordering.cart.cart import MAX_CART_QUANTITY, Cart
from ordering.domain import ordering


@ordering.command(part_of="Cart")
class AddToCart:
    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1, max_value=MAX_CART_QUANTITY)
    price = Integer(required=True, min_value=0)


@ordering.command(part_of="Cart")
class UpdateCartItem:
    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1, max_value=MAX_CART_QUANTITY)


@ordering.command(part_of="Cart")
class RemoveFromCart:
    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)


def _cart_of(repo, buyer_id) -> Cart:
    cart = repo.find_by_buyer(buyer_id)
    if cart is None:
        raise ObjectNotFoundError(f"Buyer `{buyer_id}` has no cart")
    return cart


@ordering.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.find_by_buyer(command.buyer_id) or Cart.create(buyer_id=command.buyer_id)
        cart.add_item(
            product_id=command.product_id,
            quantity=command.quantity,
            price=command.price,
        )
        repo.add(cart)
        return str(cart.id)

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = _cart_of(repo, command.buyer_id)
        cart.update_item_quantity(product_id=command.product_id, new_quantity=command.quantity)
        repo.add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = _cart_of(repo, command.buyer_id)
        cart.remove_item(product_id=command.product_id)
        repo.add(cart)
