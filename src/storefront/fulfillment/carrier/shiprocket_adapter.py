"""Shiprocket carrier adapter over its REST API.

Authenticates with account credentials and caches the bearer token until
shortly before Shiprocket expires it (10 days). Every HTTP or payload
error surfaces as ``ExternalProviderFailure``.
"""

from contextlib import contextmanager
from datetime import UTC, datetime, timedelta

import requests
import structlog

from storefront.errors import ExternalProviderFailure
from storefront.fulfillment.carrier.port import CarrierPort, CourierRate, RemoteOrder, TrackingEvent
from storefront.fulfillment.carrier.signature import verify as verify_signature

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://apiv2.shiprocket.in/v1/external"
_TOKEN_LIFETIME = timedelta(days=9)
_TIMEOUT = 15  # seconds


class ShiprocketCarrier(CarrierPort):
    def __init__(
        self,
        email: str,
        password: str,
        base_url: str = DEFAULT_BASE_URL,
        pickup_location: str = "Primary",
        pickup_postcode: str | None = None,
        channel_id: str | None = None,
        webhook_secret: str | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.email = email
        self.password = password
        self.base_url = base_url.rstrip("/")
        self.pickup_location = pickup_location
        self.pickup_postcode = pickup_postcode
        self.channel_id = channel_id
        self.webhook_secret = webhook_secret
        self.session = session or requests.Session()
        self._token: str | None = None
        self._token_expires_at: datetime | None = None

    # -------------------------------------------------------------------
    # HTTP plumbing
    # -------------------------------------------------------------------
    def _authenticate(self) -> str:
        now = datetime.now(UTC)
        if self._token and self._token_expires_at and now < self._token_expires_at:
            return self._token

        data = self._send(
            "authenticate",
            "POST",
            "/auth/login",
            auth=False,
            json={"email": self.email, "password": self.password},
        )
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise ExternalProviderFailure("authenticate", "No token in login response")
        self._token = token
        self._token_expires_at = now + _TOKEN_LIFETIME
        return token

    def _send(self, operation: str, method: str, path: str, auth: bool = True, **kwargs) -> dict:
        headers = {"Content-Type": "application/json"}
        if auth:
            headers["Authorization"] = f"Bearer {self._authenticate()}"
        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                timeout=_TIMEOUT,
                **kwargs,
            )
            response.raise_for_status()
            return response.json() if response.content else {}
        except requests.RequestException as exc:
            logger.warning("shiprocket_request_failed", operation=operation, path=path, error=str(exc))
            raise ExternalProviderFailure(operation, str(exc)) from exc
        except ValueError as exc:
            raise ExternalProviderFailure(operation, "Malformed JSON response") from exc

    # -------------------------------------------------------------------
    # Port implementation
    # -------------------------------------------------------------------
    def create_remote_order(self, snapshot: dict) -> RemoteOrder:
        billing = snapshot["billing_address"]
        shipping = snapshot["shipping_address"]
        body = {
            "order_id": snapshot["order_number"],
            "order_date": snapshot["order_date"],
            "pickup_location": self.pickup_location,
            "channel_id": self.channel_id,
            "comment": snapshot.get("notes") or "",
            "billing_customer_name": f"{billing['first_name']} {billing.get('last_name') or ''}".strip(),
            "billing_last_name": billing.get("last_name") or "",
            "billing_address": billing["street"],
            "billing_city": billing["city"],
            "billing_pincode": billing["zip_code"],
            "billing_state": billing["state"],
            "billing_country": billing["country"],
            "billing_email": billing.get("email"),
            "billing_phone": billing.get("phone"),
            "shipping_is_billing": shipping == billing,
            "shipping_customer_name": f"{shipping['first_name']} {shipping.get('last_name') or ''}".strip(),
            "shipping_last_name": shipping.get("last_name") or "",
            "shipping_address": shipping["street"],
            "shipping_city": shipping["city"],
            "shipping_pincode": shipping["zip_code"],
            "shipping_state": shipping["state"],
            "shipping_country": shipping["country"],
            "shipping_email": shipping.get("email"),
            "shipping_phone": shipping.get("phone"),
            "order_items": [
                {
                    "name": item["name"],
                    "sku": item["sku"],
                    "units": item["units"],
                    "selling_price": item["selling_price"],
                    "discount": 0,
                    "tax": 0,
                }
                for item in snapshot["items"]
            ],
            "payment_method": snapshot["payment_mode"],
            "sub_total": snapshot["sub_total"],
            "length": 10,
            "breadth": 10,
            "height": 10,
            "weight": snapshot["weight"],
        }
        data = self._send("create_remote_order", "POST", "/orders/create/adhoc", json=body)
        with _parsing("create_remote_order"):
            if not data.get("order_id"):
                raise ExternalProviderFailure("create_remote_order", data.get("message") or "No order id returned")
            return RemoteOrder(
                remote_order_id=str(data["order_id"]),
                shipment_id=str(data["shipment_id"]) if data.get("shipment_id") else None,
                awb_code=data.get("awb_code") or None,
            )

    def track_shipment(self, shipment_id: str) -> list[TrackingEvent]:
        data = self._send("track_shipment", "GET", f"/courier/track/shipment/{shipment_id}")
        with _parsing("track_shipment"):
            tracking = data.get("tracking_data") or {}
            activities = tracking.get("shipment_track_activities") or []
            return [
                TrackingEvent(
                    status=activity.get("sr-status-label") or activity.get("activity") or "",
                    location=activity.get("location"),
                    description=activity.get("activity"),
                    occurred_at=activity.get("date"),
                )
                for activity in reversed(activities)
            ]

    def cancel_remote_order(self, remote_order_id: str) -> None:
        self._send("cancel_remote_order", "POST", "/orders/cancel", json={"ids": [remote_order_id]})

    def get_shipping_rates(
        self,
        delivery_postcode: str,
        weight: float,
        declared_value: float | None = None,
        cod: bool = False,
    ) -> list[CourierRate]:
        params = {
            "pickup_postcode": self.pickup_postcode,
            "delivery_postcode": delivery_postcode,
            "weight": weight,
            "cod": 1 if cod else 0,
        }
        if declared_value is not None:
            params["declared_value"] = declared_value
        data = self._send("get_shipping_rates", "GET", "/courier/serviceability/", params=params)
        with _parsing("get_shipping_rates"):
            companies = (data.get("data") or {}).get("available_courier_companies") or []
            return [
                CourierRate(
                    courier_company_id=str(company["courier_company_id"]),
                    courier_name=company.get("courier_name") or "",
                    rate=float(company.get("rate") or 0),
                    estimated_delivery_days=_int_or_none(company.get("estimated_delivery_days")),
                )
                for company in companies
            ]

    def verify_webhook_signature(self, payload: bytes, signature: str | None) -> bool:
        if not self.webhook_secret:
            return True
        return verify_signature(payload, signature, self.webhook_secret)


@contextmanager
def _parsing(operation: str):
    """Report a response that does not have the expected shape as a provider failure."""
    try:
        yield
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        logger.warning("shiprocket_response_malformed", operation=operation, error=repr(exc))
        raise ExternalProviderFailure(operation, f"Malformed response: {exc!r}") from exc


def _int_or_none(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
