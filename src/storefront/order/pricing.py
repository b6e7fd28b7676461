"""Order pricing: shipping, tax and totals.

Shipping is free above the threshold and a flat fee below it, unless a
courier quote was obtained or the coupon grants free shipping.
"""

from dataclasses import dataclass

from storefront import settings
from storefront.order.order import Pricing
from storefront.utils.money import round_money


@dataclass(frozen=True)
class ShippingQuote:
    courier_company_id: str
    courier_name: str
    rate: float


def shipping_cost_for(subtotal: float, quote: ShippingQuote | None = None, free_shipping: bool = False) -> float:
    if free_shipping:
        return 0.0
    if quote is not None:
        return round_money(quote.rate)
    if subtotal > settings.free_shipping_threshold():
        return 0.0
    return round_money(settings.flat_shipping_fee())


def price_order(
    line_totals: list[float],
    discount: float = 0.0,
    quote: ShippingQuote | None = None,
    free_shipping: bool = False,
) -> Pricing:
    subtotal = round_money(sum(line_totals))
    shipping = shipping_cost_for(subtotal, quote, free_shipping)
    tax = round_money(subtotal * settings.tax_rate())
    discount = round_money(discount)
    return Pricing(
        subtotal=subtotal,
        shipping_cost=shipping,
        tax=tax,
        discount=discount,
        total=round_money(subtotal + shipping + tax - discount),
        currency=settings.currency(),
    )
