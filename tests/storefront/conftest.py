import os
from datetime import UTC, datetime, timedelta

import pytest

from storefront.fulfillment.carrier import reset_carrier

ADDRESS = {
    "first_name": "Asha",
    "last_name": "Rao",
    "email": "asha@example.com",
    "phone": "9876543210",
    "street": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "zip_code": "560001",
    "country": "India",
}


@pytest.fixture(scope="session")
def _storefront_domain(request):
    """Initialize the storefront domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from storefront.domain import storefront

    storefront.init()
    return storefront


@pytest.fixture(scope="session", autouse=True)
def setup_db(_storefront_domain):
    from storefront.utils.db import drop_db, setup_db

    setup_db(_storefront_domain)

    yield

    drop_db(_storefront_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_storefront_domain):
    """Push domain context before each test, cleanup after."""
    ctx = _storefront_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()
    current_domain.event_store.store._data_reset()

    reset_carrier()
    ctx.pop()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
@pytest.fixture()
def address():
    return dict(ADDRESS)


@pytest.fixture()
def make_product():
    """Persist a product, optionally with ``variants`` as (color, size, stock) tuples."""
    from protean import current_domain

    from storefront.catalog.product import Product

    def _make(name="Linen Shirt", sku=None, price=1000.0, stock=0, variants=None, category="Shirts", active=True):
        product = Product.create(
            name=name,
            sku=sku or f"SKU-{name.upper().replace(' ', '-')}",
            price=price,
            category=category,
            stock=stock,
        )
        for color, size, count in variants or []:
            product.add_variant(color, size, count)
        if active:
            product.activate()
        current_domain.repository_for(Product).add(product)
        return product

    return _make


@pytest.fixture()
def make_coupon():
    from protean import current_domain

    from storefront.coupon.coupon import Coupon

    def _make(code="SAVE20", **overrides):
        now = datetime.now(UTC)
        defaults = {
            "code": code,
            "discount_type": "percentage",
            "discount_value": 20,
            "minimum_purchase": 500,
            "maximum_discount": 1000,
            "start_date": now - timedelta(days=1),
            "end_date": now + timedelta(days=30),
        }
        defaults.update(overrides)
        coupon = Coupon.create(**defaults)
        current_domain.repository_for(Coupon).add(coupon)
        return coupon

    return _make


@pytest.fixture()
def place_order():
    from storefront.order.checkout import create_order

    def _place(product, quantity=1, color="Black", size="M", customer_id="cust-001", **options):
        return create_order(
            customer_id=customer_id,
            line_items=[{"product_id": str(product.id), "quantity": quantity, "color": color, "size": size}],
            shipping_address=dict(ADDRESS),
            **options,
        )

    return _place


@pytest.fixture()
def deliver():
    """Push an order through to delivered via a provider webhook."""
    from storefront.fulfillment.shipment_events import apply_shipment_event

    def _deliver(order, event_id=None):
        payload = {"order_id": order.order_number, "current_status": "DELIVERED"}
        if event_id:
            payload["event_id"] = event_id
        return apply_shipment_event(payload)

    return _deliver


@pytest.fixture()
def backdate_delivery():
    from protean import current_domain

    from storefront.order.order import Order

    def _backdate(order, days):
        repo = current_domain.repository_for(Order)
        order = repo.get(order.id)
        order.delivered_at = datetime.now(UTC) - timedelta(days=days)
        repo.add(order)
        return order

    return _backdate


@pytest.fixture()
def fake_carrier():
    from storefront.fulfillment.carrier import get_carrier

    return get_carrier()


@pytest.fixture()
def stock_of():
    from storefront.catalog.stock import get_product

    def _stock(product_id, color=None, size=None):
        return get_product(product_id).available_stock(color, size)

    return _stock
