"""Order assembly entry points: ``create_order`` and ``checkout_cart``.

Placement runs as one command, so the stock decrements, the coupon
redemption and the order commit together or not at all. A concurrent write
to the same product or coupon fails the version check and the command is
retried against fresh state. After it commits, the cart is cleared and the
shipping provider is told about the order. Neither follow-up can undo a
placed order.
"""

import json

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.cart.items import ClearCart, find_cart, process_cart_command
from storefront.fulfillment.remote import push_remote_order, quote_shipping
from storefront.order.order import Order, get_order
from storefront.order.payment import parse_payment_method, settles_on_delivery
from storefront.order.placement import PlaceOrder
from storefront.order.sequence import next_order_number

logger = structlog.get_logger(__name__)


def create_order(
    customer_id,
    line_items,
    shipping_address,
    billing_address=None,
    payment_method="cash_on_delivery",
    card_last4=None,
    upi_handle=None,
    coupon_code=None,
    courier_company_id=None,
    notes=None,
    from_cart=False,
) -> Order:
    """Place an order for ``line_items`` (dicts of product_id, quantity, color, size).

    Any client-side price on a line item is ignored. Raises ``NotFound``,
    ``ProductInactive``, ``InsufficientStock`` or ``InvalidCoupon`` with no
    side effects other than a consumed order number.
    """
    if not line_items:
        raise ValidationError({"items": ["Order must contain at least one item"]})
    payment = parse_payment_method(payment_method, card_last4, upi_handle)
    items = [_line_item(position, line) for position, line in enumerate(line_items, start=1)]

    quote = None
    if courier_company_id:
        quote = quote_shipping(
            courier_company_id,
            shipping_address.get("zip_code"),
            (item["quantity"] for item in items),
            cod=settles_on_delivery(payment),
        )

    order_number = next_order_number()
    command = PlaceOrder(
        order_number=order_number,
        customer_id=str(customer_id),
        items=json.dumps(items),
        shipping_address=json.dumps(shipping_address),
        billing_address=json.dumps(billing_address) if billing_address else None,
        payment_method=payment_method,
        card_last4=card_last4,
        upi_handle=upi_handle,
        coupon_code=coupon_code,
        courier_company_id=quote.courier_company_id if quote else None,
        courier_name=quote.courier_name if quote else None,
        shipping_rate=quote.rate if quote else None,
        notes=notes,
        from_cart=from_cart,
    )

    order_id = current_domain.process(command, asynchronous=False)

    order = get_order(order_id)
    logger.info(
        "order_placed",
        order_number=order.order_number,
        customer_id=str(customer_id),
        total=order.pricing.total,
        coupon_code=order.coupon_code,
    )

    if from_cart:
        _clear_cart(customer_id, order.order_number)

    return push_remote_order(order)


def _line_item(position, line) -> dict:
    """Normalize one requested line. Raises ``ValidationError`` naming the bad line."""
    if not isinstance(line, dict) or not line.get("product_id"):
        raise ValidationError({"items": [f"Item {position} must name a product_id"]})
    try:
        quantity = int(line.get("quantity"))
    except (TypeError, ValueError):
        raise ValidationError({"items": [f"Item {position} must have a whole-number quantity"]}) from None
    if quantity < 1:
        raise ValidationError({"items": [f"Item {position} quantity must be at least 1"]})
    return {
        "product_id": str(line["product_id"]),
        "quantity": quantity,
        "color": line.get("color"),
        "size": line.get("size"),
    }


def _clear_cart(customer_id, order_number):
    try:
        process_cart_command(ClearCart(customer_id=str(customer_id)))
    except Exception as exc:  # Non-fatal: the cart clears lazily on next view
        logger.warning("cart_clear_failed", customer_id=str(customer_id), order_number=order_number, error=str(exc))


def checkout_cart(customer_id, shipping_address, **options) -> Order:
    """Place an order for everything in the customer's cart."""
    cart = find_cart(customer_id)
    if cart is None or not cart.items:
        raise ValidationError({"cart": ["Cart is empty"]})

    line_items = [
        {"product_id": str(item.product_id), "quantity": item.quantity, "color": item.color, "size": item.size}
        for item in cart.items
    ]
    return create_order(customer_id, line_items, shipping_address, from_cart=True, **options)
