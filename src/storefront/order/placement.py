"""Order placement: the single unit of work that prices, decrements stock and redeems the coupon.

Product and coupon saves are version checked at commit. When another order
wrote the same product or coupon first, the commit fails and the handler
runs again on fresh state, so the stock check and the usage limit are
always evaluated against what was actually committed.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.catalog.product import Product
from storefront.catalog.stock import get_product
from storefront.coupon.coupon import Coupon, find_coupon
from storefront.coupon.evaluator import calculate_discount, validate
from storefront.coupon.preview import build_context
from storefront.domain import storefront
from storefront.errors import InvalidCoupon
from storefront.order.order import Order
from storefront.order.payment import parse_payment_method
from storefront.order.pricing import ShippingQuote, price_order
from storefront.utils.money import round_money


@storefront.command(part_of="Order")
class PlaceOrder:
    order_number = String(required=True, max_length=20)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity, color, size}
    shipping_address = Text(required=True)  # JSON: address dict
    billing_address = Text()  # JSON: address dict, defaults to shipping
    payment_method = String(required=True, max_length=30)
    card_last4 = String(max_length=4)
    upi_handle = String(max_length=255)
    coupon_code = String(max_length=20)
    courier_company_id = String(max_length=50)
    courier_name = String(max_length=100)
    shipping_rate = Float()  # Courier quote obtained server-side
    notes = Text()
    from_cart = Boolean(default=False)


def _loads(value):
    return json.loads(value) if isinstance(value, str) else value


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        requested = _loads(command.items) or []
        if not requested:
            raise ValidationError({"items": ["Order must contain at least one item"]})

        payment = parse_payment_method(command.payment_method, command.card_last4, command.upi_handle)

        # Resolve products once each so repeated lines decrement the same copy
        products: dict[str, Product] = {}
        lines = []
        for line in requested:
            product_id = str(line["product_id"])
            quantity = int(line.get("quantity") or 0)
            if quantity < 1:
                raise ValidationError({"quantity": ["Quantity must be at least 1"]})

            if product_id not in products:
                product = get_product(product_id)
                product.ensure_orderable()
                products[product_id] = product
            product = products[product_id]

            product.decrement_stock(quantity, line.get("color"), line.get("size"))
            lines.append(
                {
                    "product_id": product_id,
                    "product_name": product.name,
                    "color": line.get("color"),
                    "size": line.get("size"),
                    "quantity": quantity,
                    "unit_price": product.price,
                }
            )

        line_totals = [round_money(line["unit_price"] * line["quantity"]) for line in lines]

        coupon = None
        discount = 0.0
        if command.coupon_code:
            coupon = find_coupon(command.coupon_code)
            verdict = validate(coupon, build_context(command.customer_id, list(products.values())))
            if not verdict.valid:
                raise InvalidCoupon(verdict.reason)
            result = calculate_discount(coupon, round_money(sum(line_totals)))
            if not result.valid:
                raise InvalidCoupon(result.reason)
            discount = result.discount_amount

        quote = None
        if command.courier_company_id and command.shipping_rate is not None:
            quote = ShippingQuote(
                courier_company_id=command.courier_company_id,
                courier_name=command.courier_name,
                rate=command.shipping_rate,
            )

        pricing = price_order(
            line_totals,
            discount=discount,
            quote=quote,
            free_shipping=bool(coupon and coupon.free_shipping),
        )

        order = Order.create(
            order_number=command.order_number,
            customer_id=command.customer_id,
            items=lines,
            shipping_address=_loads(command.shipping_address),
            billing_address=_loads(command.billing_address),
            pricing=pricing,
            payment=payment,
            coupon_code=coupon.code if coupon else None,
            courier_company_id=command.courier_company_id,
            courier_name=command.courier_name,
            notes=command.notes,
            from_cart=command.from_cart,
        )

        if coupon is not None:
            coupon.redeem(command.customer_id, str(order.id))
            current_domain.repository_for(Coupon).add(coupon)

        product_repo = current_domain.repository_for(Product)
        for product in products.values():
            product_repo.add(product)

        current_domain.repository_for(Order).add(order)
        return str(order.id)
