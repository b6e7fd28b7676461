"""Application tests for reconciling shipment webhooks into orders."""

import pytest

from storefront.errors import NotFound
from storefront.fulfillment.outcome import ReconcileOutcome
from storefront.fulfillment.shipment_events import apply_shipment_event
from storefront.order.order import OrderStatus, get_order
from storefront.order.payment import PaymentStatus


@pytest.fixture()
def order(make_product, place_order):
    product = make_product(variants=[("Black", "M", 5)])
    return place_order(product, quantity=2)


def _event(order, status, **extra):
    return apply_shipment_event({"order_id": order.order_number, "current_status": status, **extra})


class TestStatusReconciliation:
    def test_forward_event_applied(self, order):
        assert _event(order, "PICKED UP", awb="AWB123", courier_name="Delhivery") == ReconcileOutcome.APPLIED.value
        stored = get_order(order.id)
        assert stored.status == OrderStatus.PROCESSING.value
        assert stored.current_status == "PICKED UP"
        assert stored.awb_code == "AWB123"
        assert stored.courier_name == "Delhivery"

    def test_delivered_twice_stamps_once(self, order):
        assert _event(order, "DELIVERED") == ReconcileOutcome.APPLIED.value
        first = get_order(order.id).delivered_at

        assert _event(order, "DELIVERED") == ReconcileOutcome.UNCHANGED.value
        stored = get_order(order.id)
        assert stored.delivered_at == first
        assert stored.payment_status == PaymentStatus.PAID.value

    def test_duplicate_event_id_skipped(self, order):
        assert _event(order, "SHIPPED", event_id="evt-1") == ReconcileOutcome.APPLIED.value
        assert _event(order, "DELIVERED", event_id="evt-1") == ReconcileOutcome.DUPLICATE.value
        assert get_order(order.id).status == OrderStatus.SHIPPED.value

    def test_stale_event_ignored(self, order):
        _event(order, "OUT FOR DELIVERY")
        assert _event(order, "PICKUP SCHEDULED") == ReconcileOutcome.STALE.value
        stored = get_order(order.id)
        assert stored.status == OrderStatus.SHIPPED.value
        assert stored.current_status == "PICKUP SCHEDULED"

    def test_unknown_status_recorded_verbatim(self, order):
        assert _event(order, "MISROUTED", current_status_id=99) == ReconcileOutcome.UNKNOWN_STATUS.value
        stored = get_order(order.id)
        assert stored.status == OrderStatus.PENDING.value
        assert stored.current_status == "MISROUTED"
        assert stored.status_code == "99"

    def test_unknown_order(self):
        with pytest.raises(NotFound):
            apply_shipment_event({"order_id": "ORD-0000", "current_status": "SHIPPED"})


class TestCarrierCancellation:
    def test_rto_before_shipment_cancels_and_restores(self, order, stock_of):
        product_id = order.items[0].product_id
        assert _event(order, "RTO INITIATED") == ReconcileOutcome.APPLIED.value
        assert get_order(order.id).status == OrderStatus.CANCELLED.value
        assert stock_of(product_id, "Black", "M") == 5

    def test_cancel_after_shipment_rejected(self, order, stock_of):
        product_id = order.items[0].product_id
        _event(order, "SHIPPED")
        assert _event(order, "CANCELLED") == ReconcileOutcome.REJECTED.value
        stored = get_order(order.id)
        assert stored.status == OrderStatus.SHIPPED.value
        assert stored.current_status == "CANCELLED"
        assert stock_of(product_id, "Black", "M") == 3
