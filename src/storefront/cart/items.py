"""Cart item management: commands and handler."""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.catalog.stock import get_product
from storefront.domain import storefront
from storefront.errors import InsufficientStock, NotFound


@storefront.command(part_of="Cart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    color = String(max_length=50)
    size = String(max_length=20)


@storefront.command(part_of="Cart")
class UpdateCartItem:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="Cart")
class RemoveFromCart:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)


@storefront.command(part_of="Cart")
class ClearCart:
    customer_id = Identifier(required=True)


def find_cart(customer_id):
    matches = current_domain.repository_for(Cart)._dao.query.filter(customer_id=str(customer_id)).all().items
    return matches[0] if matches else None


def add_product(cart, product, quantity, color=None, size=None):
    """Add ``product`` to ``cart`` at its current price if enough stock is available."""
    product.ensure_orderable()
    available = product.available_stock(color, size)
    if available < cart.quantity_of(product.id, color, size) + quantity:
        raise InsufficientStock(product.name, available)
    return cart.add_item(
        product_id=product.id,
        product_name=product.name,
        unit_price=product.price,
        quantity=quantity,
        color=color,
        size=size,
    )


def _existing_cart(customer_id):
    cart = find_cart(customer_id)
    if cart is None:
        raise NotFound("cart", str(customer_id))
    return cart


@storefront.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        cart = find_cart(command.customer_id) or Cart.create(command.customer_id)
        item = add_product(cart, get_product(command.product_id), command.quantity, command.color, command.size)
        current_domain.repository_for(Cart).add(cart)
        return str(item.id)

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        cart = _existing_cart(command.customer_id)
        item = cart.get_item(command.item_id)
        product = get_product(item.product_id)
        available = product.available_stock(item.color, item.size)
        if available < command.quantity:
            raise InsufficientStock(product.name, available)
        cart.update_quantity(command.item_id, command.quantity)
        current_domain.repository_for(Cart).add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = _existing_cart(command.customer_id)
        cart.remove_item(command.item_id)
        current_domain.repository_for(Cart).add(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = find_cart(command.customer_id)
        if cart is None:
            return
        cart.clear()
        current_domain.repository_for(Cart).add(cart)


def process_cart_command(command):
    return current_domain.process(command, asynchronous=False)
