"""Application tests for admin status updates through the order state machine."""

import pytest
from protean.exceptions import ValidationError

from storefront.errors import InvalidState, NotFound
from storefront.order.order import OrderStatus
from storefront.order.payment import PaymentStatus
from storefront.order.status import update_order_status


@pytest.fixture()
def shirt(make_product):
    return make_product(variants=[("Black", "M", 5)])


class TestAdvanceOrder:
    def test_walks_the_fulfillment_path(self, shirt, place_order):
        order = place_order(shirt)
        for status in ("confirmed", "processing", "shipped"):
            order = update_order_status(order.id, status)
            assert order.status == status

    def test_delivery_settles_cash_on_delivery(self, shirt, place_order):
        order = place_order(shirt)
        delivered = update_order_status(order.id, "delivered")

        assert delivered.status == OrderStatus.DELIVERED.value
        assert delivered.delivered_at is not None
        assert delivered.payment_status == PaymentStatus.PAID.value

    def test_same_status_is_a_no_op(self, shirt, place_order):
        order = place_order(shirt)
        assert update_order_status(order.id, "pending").status == OrderStatus.PENDING.value

    def test_cannot_move_backwards(self, shirt, place_order):
        order = place_order(shirt)
        update_order_status(order.id, "shipped")
        with pytest.raises(InvalidState):
            update_order_status(order.id, "confirmed")

    def test_unknown_status(self, shirt, place_order):
        order = place_order(shirt)
        with pytest.raises(ValidationError):
            update_order_status(order.id, "lost")

    def test_unknown_order(self):
        with pytest.raises(NotFound):
            update_order_status("missing", "confirmed")


class TestAdminCancellation:
    def test_cancel_restores_stock_and_remote_order(self, shirt, place_order, stock_of, fake_carrier):
        order = place_order(shirt, quantity=2)
        update_order_status(order.id, "processing")

        cancelled = update_order_status(order.id, "cancelled")

        assert cancelled.status == OrderStatus.CANCELLED.value
        assert cancelled.cancellation_reason == "Cancelled by admin"
        assert stock_of(shirt.id, "Black", "M") == 5
        assert fake_carrier.cancelled == [order.remote_order_id]

    def test_cancel_with_reason(self, shirt, place_order):
        order = place_order(shirt)
        cancelled = update_order_status(order.id, "cancelled", reason="Address undeliverable")
        assert cancelled.cancellation_reason == "Address undeliverable"

    def test_cannot_cancel_delivered_order(self, shirt, place_order, stock_of):
        order = place_order(shirt, quantity=2)
        update_order_status(order.id, "delivered")

        with pytest.raises(InvalidState):
            update_order_status(order.id, "cancelled")
        assert stock_of(shirt.id, "Black", "M") == 3

    def test_cancelled_order_cannot_be_reopened(self, shirt, place_order, stock_of):
        order = place_order(shirt)
        update_order_status(order.id, "cancelled")

        with pytest.raises(InvalidState):
            update_order_status(order.id, "processing")
        assert stock_of(shirt.id, "Black", "M") == 5


class TestPaymentStatus:
    def test_mark_paid(self, shirt, place_order):
        order = place_order(shirt)
        assert update_order_status(order.id, payment_status="paid").payment_status == PaymentStatus.PAID.value

    def test_status_and_payment_together(self, shirt, place_order):
        order = place_order(shirt)
        updated = update_order_status(order.id, "confirmed", payment_status="failed")
        assert updated.status == OrderStatus.CONFIRMED.value
        assert updated.payment_status == PaymentStatus.FAILED.value

    def test_refund_only_through_cancellation(self, shirt, place_order):
        order = place_order(shirt)
        with pytest.raises(InvalidState):
            update_order_status(order.id, payment_status="refunded")
