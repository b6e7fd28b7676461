"""Courier rates and serviceability for a delivery postcode, quoted live by the provider."""

from dataclasses import dataclass, field

import structlog
from protean.exceptions import ValidationError

from storefront.errors import ExternalProviderFailure
from storefront.fulfillment.carrier import get_carrier
from storefront.fulfillment.carrier.port import CourierRate
from storefront.fulfillment.remote import shipment_weight
from storefront.utils.money import round_money

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ShippingOptions:
    delivery_postcode: str
    weight: float
    declared_value: float | None
    serviceable: bool
    live: bool  # False when the provider could not be asked
    rates: list[CourierRate] = field(default_factory=list)


def shipping_options(delivery_postcode, weight, declared_value=None, cod=False) -> ShippingOptions:
    """Couriers that deliver to ``delivery_postcode``, cheapest first.

    A provider failure degrades to an unserviceable answer with ``live``
    unset rather than an error.
    """
    postcode = str(delivery_postcode or "").strip()
    if not postcode:
        raise ValidationError({"delivery_postcode": ["Delivery postcode is required"]})
    if weight is None or weight <= 0:
        raise ValidationError({"weight": ["Weight must be greater than 0"]})

    try:
        rates = get_carrier().get_shipping_rates(
            delivery_postcode=postcode,
            weight=weight,
            declared_value=declared_value,
            cod=cod,
        )
    except ExternalProviderFailure as exc:
        logger.warning("shipping_rates_unavailable", postcode=postcode, error=exc.detail)
        return ShippingOptions(postcode, weight, declared_value, serviceable=False, live=False)

    rates = sorted(rates, key=lambda rate: rate.rate)
    return ShippingOptions(postcode, weight, declared_value, serviceable=bool(rates), live=True, rates=rates)


def quote_items(delivery_postcode, items, cod=False) -> ShippingOptions:
    """Rates for a basket of ``items`` (dicts of quantity and price)."""
    if not items:
        raise ValidationError({"items": ["At least one item is required"]})
    quantities = [int(item.get("quantity") or 0) for item in items]
    if any(quantity < 1 for quantity in quantities):
        raise ValidationError({"items": ["Quantity must be at least 1"]})

    declared_value = round_money(sum(q * float(item.get("price") or 0) for q, item in zip(quantities, items)))
    return shipping_options(delivery_postcode, shipment_weight(quantities), declared_value or None, cod)
