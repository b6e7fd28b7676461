"""Wishlist commands, including moving a product into the cart."""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.cart.items import add_product, find_cart
from storefront.catalog.stock import get_product
from storefront.domain import storefront
from storefront.errors import NotFound
from storefront.wishlist.wishlist import Wishlist


@storefront.command(part_of="Wishlist")
class AddToWishlist:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)


@storefront.command(part_of="Wishlist")
class RemoveFromWishlist:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)


@storefront.command(part_of="Wishlist")
class ClearWishlist:
    customer_id = Identifier(required=True)


@storefront.command(part_of="Wishlist")
class MoveToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(default=1, min_value=1)
    color = String(max_length=50)
    size = String(max_length=20)


def find_wishlist(customer_id):
    repo = current_domain.repository_for(Wishlist)
    matches = repo._dao.query.filter(customer_id=str(customer_id)).all().items
    return matches[0] if matches else None


def _existing_wishlist(customer_id):
    wishlist = find_wishlist(customer_id)
    if wishlist is None:
        raise NotFound("wishlist", str(customer_id))
    return wishlist


@storefront.command_handler(part_of=Wishlist)
class WishlistHandler:
    @handle(AddToWishlist)
    def add_to_wishlist(self, command):
        get_product(command.product_id)
        wishlist = find_wishlist(command.customer_id) or Wishlist.create(command.customer_id)
        wishlist.add(command.product_id)
        current_domain.repository_for(Wishlist).add(wishlist)

    @handle(RemoveFromWishlist)
    def remove_from_wishlist(self, command):
        wishlist = _existing_wishlist(command.customer_id)
        wishlist.remove(command.product_id)
        current_domain.repository_for(Wishlist).add(wishlist)

    @handle(ClearWishlist)
    def clear_wishlist(self, command):
        wishlist = find_wishlist(command.customer_id)
        if wishlist is None:
            return
        wishlist.clear()
        current_domain.repository_for(Wishlist).add(wishlist)

    @handle(MoveToCart)
    def move_to_cart(self, command):
        wishlist = _existing_wishlist(command.customer_id)
        wishlist.remove(command.product_id)

        cart = find_cart(command.customer_id) or Cart.create(command.customer_id)
        add_product(cart, get_product(command.product_id), command.quantity, command.color, command.size)
        current_domain.repository_for(Cart).add(cart)
        current_domain.repository_for(Wishlist).add(wishlist)


def process_wishlist_command(command):
    return current_domain.process(command, asynchronous=False)


def view_wishlist(customer_id) -> Wishlist:
    return find_wishlist(customer_id) or Wishlist.create(customer_id)
