"""Tests for the Shiprocket adapter against a stubbed HTTP session."""

from unittest.mock import MagicMock

import pytest
import requests

from storefront.errors import ExternalProviderFailure
from storefront.fulfillment.carrier.shiprocket_adapter import ShiprocketCarrier
from storefront.fulfillment.carrier.signature import sign

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

SNAPSHOT = {
    "order_number": "ORD-1001",
    "order_date": "2026-06-01",
    "shipping_address": ADDRESS,
    "billing_address": ADDRESS,
    "items": [{"name": "Linen Shirt", "sku": "prod-001", "units": 2, "selling_price": 1000.0}],
    "payment_mode": "COD",
    "sub_total": 2000.0,
    "notes": None,
    "weight": 1.0,
}


def _response(payload):
    response = MagicMock()
    response.content = b"{}"
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


@pytest.fixture()
def session():
    session = MagicMock()
    session.request.side_effect = lambda method, url, **kwargs: _response(
        {"token": "tok-123"} if url.endswith("/auth/login") else session.payload
    )
    session.payload = {}
    return session


@pytest.fixture()
def carrier(session):
    return ShiprocketCarrier(
        email="ops@example.com",
        password="secret",
        pickup_postcode="400001",
        webhook_secret="hook-secret",
        session=session,
    )


class TestShiprocketCarrier:
    def test_create_remote_order(self, carrier, session):
        session.payload = {"order_id": 987654, "shipment_id": 123456, "awb_code": ""}
        remote = carrier.create_remote_order(SNAPSHOT)

        assert remote.remote_order_id == "987654"
        assert remote.shipment_id == "123456"
        assert remote.awb_code is None

        method, url = session.request.call_args.args
        body = session.request.call_args.kwargs["json"]
        assert method == "POST"
        assert url.endswith("/orders/create/adhoc")
        assert body["order_id"] == "ORD-1001"
        assert body["payment_method"] == "COD"
        assert body["shipping_is_billing"] is True
        assert session.request.call_args.kwargs["headers"]["Authorization"] == "Bearer tok-123"

    def test_token_is_cached(self, carrier, session):
        session.payload = {"order_id": 1}
        carrier.create_remote_order(SNAPSHOT)
        carrier.cancel_remote_order("1")
        logins = [c for c in session.request.call_args_list if c.args[1].endswith("/auth/login")]
        assert len(logins) == 1

    def test_missing_order_id_is_a_failure(self, carrier, session):
        session.payload = {"message": "Invalid pincode"}
        with pytest.raises(ExternalProviderFailure) as exc:
            carrier.create_remote_order(SNAPSHOT)
        assert exc.value.detail == "Invalid pincode"

    def test_http_error_is_a_failure(self, carrier, session):
        session.request.side_effect = requests.ConnectionError("connection refused")
        with pytest.raises(ExternalProviderFailure) as exc:
            carrier.cancel_remote_order("1")
        assert exc.value.operation == "authenticate"

    def test_shipping_rates(self, carrier, session):
        session.payload = {
            "data": {
                "available_courier_companies": [
                    {"courier_company_id": 10, "courier_name": "Delhivery", "rate": "72.5", "estimated_delivery_days": "3"},
                ]
            }
        }
        rates = carrier.get_shipping_rates("560001", 1.0, cod=True)
        assert rates[0].courier_company_id == "10"
        assert rates[0].rate == 72.5
        assert rates[0].estimated_delivery_days == 3
        assert session.request.call_args.kwargs["params"]["cod"] == 1

    def test_unparseable_rate_is_a_failure(self, carrier, session):
        session.payload = {"data": {"available_courier_companies": [{"courier_name": "X", "rate": "n/a"}]}}
        with pytest.raises(ExternalProviderFailure) as exc:
            carrier.get_shipping_rates("560001", 1.0)
        assert exc.value.operation == "get_shipping_rates"
        assert "Malformed response" in exc.value.detail

    def test_non_numeric_rate_is_a_failure(self, carrier, session):
        session.payload = {
            "data": {"available_courier_companies": [{"courier_company_id": 7, "courier_name": "X", "rate": "n/a"}]}
        }
        with pytest.raises(ExternalProviderFailure):
            carrier.get_shipping_rates("560001", 1.0)

    def test_tracking_events_oldest_first(self, carrier, session):
        session.payload = {
            "tracking_data": {
                "shipment_track_activities": [
                    {"date": "2026-06-02", "activity": "Delivered", "location": "Bengaluru", "sr-status-label": "DELIVERED"},
                    {"date": "2026-06-01", "activity": "Picked up", "location": "Mumbai", "sr-status-label": "PICKED UP"},
                ]
            }
        }
        events = carrier.track_shipment("123456")
        assert [e.status for e in events] == ["PICKED UP", "DELIVERED"]

    def test_unexpected_tracking_shape_is_a_failure(self, carrier, session):
        session.payload = {"tracking_data": ["not", "an", "object"]}
        with pytest.raises(ExternalProviderFailure) as exc:
            carrier.track_shipment("123456")
        assert exc.value.operation == "track_shipment"

    def test_unexpected_create_response_is_a_failure(self, carrier, session):
        session.payload = [{"order_id": 1}]
        with pytest.raises(ExternalProviderFailure) as exc:
            carrier.create_remote_order(SNAPSHOT)
        assert exc.value.operation == "create_remote_order"

    def test_webhook_signature(self, carrier):
        body = b'{"order_id": "ORD-1001"}'
        assert carrier.verify_webhook_signature(body, sign(body, "hook-secret"))
        assert not carrier.verify_webhook_signature(body, sign(body, "other"))
        assert not carrier.verify_webhook_signature(body, None)
