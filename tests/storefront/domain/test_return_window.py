"""Tests for the exchange/return eligibility window."""

from datetime import UTC, datetime, timedelta

import pytest

from storefront.errors import InvalidState, WindowExpired
from storefront.order.order import Order, OrderStatus, Pricing
from storefront.order.payment import CashOnDelivery
from storefront.returns.window import check_window

DELIVERED_AT = datetime(2026, 6, 1, 10, 0, tzinfo=UTC)


def _order(delivered=True):
    order = Order.create(
        order_number="ORD-2001",
        customer_id="cust-001",
        items=[{"product_id": "prod-001", "product_name": "Tee", "quantity": 1, "unit_price": 500.0}],
        shipping_address={
            "first_name": "Asha",
            "street": "12 MG Road",
            "city": "Bengaluru",
            "state": "Karnataka",
            "zip_code": "560001",
            "country": "India",
        },
        billing_address=None,
        pricing=Pricing(subtotal=500.0, shipping_cost=0.0, tax=40.0, discount=0.0, total=540.0),
        payment=CashOnDelivery(),
    )
    if delivered:
        order.advance_to(OrderStatus.DELIVERED)
        order.delivered_at = DELIVERED_AT
    return order


def test_within_window_is_accepted():
    check_window(_order(), now=DELIVERED_AT + timedelta(days=3), days=7)


def test_last_day_is_accepted():
    check_window(_order(), now=DELIVERED_AT + timedelta(days=7), days=7)


def test_eight_days_after_delivery_is_rejected():
    with pytest.raises(WindowExpired) as exc:
        check_window(_order(), now=DELIVERED_AT + timedelta(days=8), days=7)
    assert exc.value.days == 7


def test_undelivered_order_is_rejected():
    with pytest.raises(InvalidState):
        check_window(_order(delivered=False), now=DELIVERED_AT, days=7)


def test_window_defaults_to_setting(monkeypatch):
    monkeypatch.setenv("RETURN_WINDOW_DAYS", "2")
    with pytest.raises(WindowExpired):
        check_window(_order(), now=DELIVERED_AT + timedelta(days=3))
