"""Best-effort synchronisation of local orders with the shipping provider.

The local order is the source of truth. Provider calls happen after the
local commit; a failure is logged and the order stands as it is. Webhooks
reconcile the two sides later.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import ExternalProviderFailure
from storefront.fulfillment.carrier import get_carrier
from storefront.order.order import Order, get_order
from storefront.order.payment import provider_payment_mode
from storefront.order.pricing import ShippingQuote

logger = structlog.get_logger(__name__)

# Per-unit weight (kg) sent to the provider when products carry none
UNIT_WEIGHT_KG = 0.5


@storefront.command(part_of="Order")
class RecordRemoteOrder:
    order_id = Identifier(required=True)
    remote_order_id = String(required=True, max_length=100)
    shipment_id = String(max_length=100)
    awb_code = String(max_length=100)


@storefront.command_handler(part_of=Order)
class RemoteOrderHandler:
    @handle(RecordRemoteOrder)
    def record_remote_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.link_remote_order(command.remote_order_id, command.shipment_id)
        if command.awb_code:
            order.record_shipment_details(awb_code=command.awb_code)
        repo.add(order)


def order_snapshot(order: Order) -> dict:
    """What the provider needs to create its copy of ``order``."""
    return {
        "order_number": order.order_number,
        "order_date": order.created_at.date().isoformat(),
        "shipping_address": order.shipping_address.to_dict(),
        "billing_address": order.billing_address.to_dict(),
        "items": [
            {
                "name": item.product_name,
                "sku": str(item.product_id),
                "units": item.quantity,
                "selling_price": item.unit_price,
            }
            for item in order.items
        ],
        "payment_mode": provider_payment_mode(order.payment),
        "sub_total": order.pricing.subtotal,
        "notes": order.notes,
        "weight": shipment_weight(item.quantity for item in order.items),
    }


def shipment_weight(quantities) -> float:
    return round(max(sum(quantities), 1) * UNIT_WEIGHT_KG, 2)


def push_remote_order(order: Order) -> Order:
    """Create the provider-side order and record its identifiers. Never raises on provider failure."""
    try:
        remote = get_carrier().create_remote_order(order_snapshot(order))
    except ExternalProviderFailure as exc:
        logger.warning(
            "remote_order_create_failed",
            order_number=order.order_number,
            error=exc.detail,
        )
        return order

    current_domain.process(
        RecordRemoteOrder(
            order_id=str(order.id),
            remote_order_id=remote.remote_order_id,
            shipment_id=remote.shipment_id,
            awb_code=remote.awb_code,
        ),
        asynchronous=False,
    )
    logger.info(
        "remote_order_created",
        order_number=order.order_number,
        remote_order_id=remote.remote_order_id,
        shipment_id=remote.shipment_id,
    )
    return get_order(order.id)


def cancel_remote_order(order: Order) -> bool:
    """Ask the provider to cancel its copy of ``order``. Returns False when it could not."""
    if not order.remote_order_id:
        return False
    try:
        get_carrier().cancel_remote_order(order.remote_order_id)
    except ExternalProviderFailure as exc:
        logger.warning(
            "remote_order_cancel_failed",
            order_number=order.order_number,
            remote_order_id=order.remote_order_id,
            error=exc.detail,
        )
        return False
    logger.info("remote_order_cancelled", order_number=order.order_number, remote_order_id=order.remote_order_id)
    return True


def quote_shipping(courier_company_id, delivery_postcode, quantities, declared_value=None, cod=False):
    """Provider rate for the chosen courier, or None when it cannot be quoted."""
    try:
        rates = get_carrier().get_shipping_rates(
            delivery_postcode=delivery_postcode,
            weight=shipment_weight(quantities),
            declared_value=declared_value,
            cod=cod,
        )
    except ExternalProviderFailure as exc:
        logger.warning("shipping_quote_failed", courier_company_id=courier_company_id, error=exc.detail)
        return None

    rate = next((r for r in rates if r.courier_company_id == str(courier_company_id)), None)
    if rate is None:
        logger.warning("courier_not_serviceable", courier_company_id=courier_company_id, postcode=delivery_postcode)
        return None
    return ShippingQuote(courier_company_id=rate.courier_company_id, courier_name=rate.courier_name, rate=rate.rate)
