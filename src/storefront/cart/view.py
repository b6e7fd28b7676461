"""Reading a cart, clearing it lazily when an earlier post-checkout clear failed."""

import structlog
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.cart.items import ClearCart, find_cart, process_cart_command
from storefront.order.order import Order
from storefront.utils.dates import as_utc

logger = structlog.get_logger(__name__)


def _checked_out_since(cart: Cart) -> bool:
    repo = current_domain.repository_for(Order)
    orders = repo._dao.query.filter(customer_id=str(cart.customer_id), from_cart=True).all().items
    last_change = as_utc(cart.updated_at)
    return any(as_utc(order.created_at) >= last_change for order in orders)


def view_cart(customer_id) -> Cart:
    """The customer's cart, created empty on first view."""
    cart = find_cart(customer_id)
    if cart is None:
        return Cart.create(customer_id)

    if cart.items and _checked_out_since(cart):
        logger.info("cart_cleared_lazily", customer_id=str(customer_id))
        process_cart_command(ClearCart(customer_id=str(customer_id)))
        cart = find_cart(customer_id)
    return cart
