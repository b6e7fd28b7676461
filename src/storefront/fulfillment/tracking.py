"""Order tracking: stored shipment fields plus the provider's live history when reachable."""

from dataclasses import dataclass, field

import structlog

from storefront.errors import ExternalProviderFailure, NotFound
from storefront.fulfillment.carrier import get_carrier
from storefront.fulfillment.carrier.port import TrackingEvent
from storefront.order.order import get_order

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TrackingInfo:
    order_number: str
    status: str
    current_status: str | None
    courier_name: str | None
    awb_code: str | None
    shipment_id: str | None
    tracking_url: str | None
    expected_delivery_date: str | None
    delivered_at: str | None
    live: bool = False
    events: list[TrackingEvent] = field(default_factory=list)


def track_order(order_id, customer_id=None) -> TrackingInfo:
    order = get_order(order_id)
    if customer_id is not None and str(order.customer_id) != str(customer_id):
        raise NotFound("order", str(order_id))

    events: list[TrackingEvent] = []
    live = False
    if order.shipment_id:
        try:
            events = get_carrier().track_shipment(order.shipment_id)
            live = True
        except ExternalProviderFailure as exc:
            logger.warning("tracking_unavailable", order_number=order.order_number, error=exc.detail)

    return TrackingInfo(
        order_number=order.order_number,
        status=order.status,
        current_status=order.current_status,
        courier_name=order.courier_name,
        awb_code=order.awb_code,
        shipment_id=order.shipment_id,
        tracking_url=order.tracking_url,
        expected_delivery_date=order.expected_delivery_date,
        delivered_at=order.delivered_at.isoformat() if order.delivered_at else None,
        live=live,
        events=events,
    )
