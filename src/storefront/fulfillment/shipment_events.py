"""Shipment webhooks: reconcile provider status updates into the order.

Re-delivery is harmless. A repeated ``event_id`` is skipped outright; without
one, re-applying the order's current status changes nothing and stamps
nothing twice. Stale updates (moving an order backwards) are ignored.
"""

import structlog
from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from storefront.catalog.stock import restore_items
from storefront.domain import storefront
from storefront.errors import NotFound
from storefront.fulfillment.outcome import ReconcileOutcome
from storefront.fulfillment.status_map import ProviderStatus, to_order_status
from storefront.order.order import Order, OrderStatus, find_order_by

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class ApplyShipmentEvent:
    order_number = String(required=True, max_length=20)
    current_status = String(required=True, max_length=100)
    status_code = String(max_length=20)
    awb_code = String(max_length=100)
    shipment_id = String(max_length=100)
    courier_name = String(max_length=100)
    pickup_scheduled_date = String(max_length=50)
    expected_delivery_date = String(max_length=50)
    event_id = String(max_length=255)


@storefront.command_handler(part_of=Order)
class ShipmentEventHandler:
    @handle(ApplyShipmentEvent)
    def apply_shipment_event(self, command):
        order = find_order_by(order_number=command.order_number)
        if order is None:
            raise NotFound("order", command.order_number)

        if order.has_processed(command.event_id):
            logger.info("shipment_event_duplicate", order_number=order.order_number, event_id=command.event_id)
            return ReconcileOutcome.DUPLICATE.value

        order.record_provider_status(command.current_status, command.status_code)
        order.record_shipment_details(
            awb_code=command.awb_code,
            shipment_id=command.shipment_id,
            courier_name=command.courier_name,
            pickup_scheduled_date=command.pickup_scheduled_date,
            expected_delivery_date=command.expected_delivery_date,
        )

        outcome = self._reconcile(order, ProviderStatus.parse(command.current_status), command.current_status)

        order.mark_processed(command.event_id)
        current_domain.repository_for(Order).add(order)
        return outcome.value

    def _reconcile(self, order, provider_status, raw_status):
        target = to_order_status(provider_status)
        log = logger.bind(order_number=order.order_number, provider_status=raw_status, order_status=order.status)

        if target is None:
            log.warning("shipment_status_unknown")
            return ReconcileOutcome.UNKNOWN_STATUS

        if target.value == order.status:
            return ReconcileOutcome.UNCHANGED

        if target == OrderStatus.CANCELLED:
            if not order.can_transition(OrderStatus.CANCELLED):
                log.warning("shipment_cancel_rejected")
                return ReconcileOutcome.REJECTED
            order.cancel(f"Cancelled by carrier ({raw_status})")
            restore_items(order.items, order.order_number)
            log.info("order_cancelled_by_carrier")
            return ReconcileOutcome.APPLIED

        if not (order.is_behind(target) and order.can_transition(target)):
            log.info("shipment_event_stale", target_status=target.value)
            return ReconcileOutcome.STALE

        order.advance_to(target)
        log.info("order_status_reconciled", target_status=target.value)
        return ReconcileOutcome.APPLIED


def apply_shipment_event(payload: dict) -> str:
    """Apply a shipment webhook payload. Returns the ``ReconcileOutcome`` value.

    ``payload["order_id"]`` is the local order number, as sent when the
    remote order was created.
    """
    order_number = str(payload.get("order_id") or "")
    order = find_order_by(order_number=order_number)
    if order is None:
        raise NotFound("order", order_number)

    command = ApplyShipmentEvent(
        order_number=order_number,
        current_status=payload.get("current_status") or ProviderStatus.UNKNOWN.value,
        status_code=_optional_str(payload.get("current_status_id") or payload.get("shipment_status_id")),
        awb_code=_optional_str(payload.get("awb")),
        shipment_id=_optional_str(payload.get("shipment_id")),
        courier_name=payload.get("courier_name"),
        pickup_scheduled_date=_optional_str(payload.get("pickup_scheduled_date")),
        expected_delivery_date=_optional_str(payload.get("expected_delivery_date") or payload.get("etd")),
        event_id=_optional_str(payload.get("event_id")),
    )

    return current_domain.process(command, asynchronous=False)


def _optional_str(value):
    return str(value) if value not in (None, "") else None
