"""Fake carrier adapter: deterministic provider for tests and development.

Records every call and can be configured to fail, in which case each
operation raises ``ExternalProviderFailure``.
"""

from datetime import UTC, datetime
from uuid import uuid4

from storefront.errors import ExternalProviderFailure
from storefront.fulfillment.carrier.signature import verify as verify_signature
from storefront.fulfillment.carrier.port import CarrierPort, CourierRate, RemoteOrder, TrackingEvent


class FakeCarrier(CarrierPort):
    """Fake carrier that always succeeds by default."""

    def __init__(self, webhook_secret: str | None = None):
        self.should_succeed = True
        self.failure_reason = "Carrier unavailable"
        self.webhook_secret = webhook_secret
        self.created: list[dict] = []
        self.cancelled: list[str] = []
        self.rates = [
            CourierRate(courier_company_id="1", courier_name="Fake Express", rate=60.0, estimated_delivery_days=2),
            CourierRate(courier_company_id="2", courier_name="Fake Surface", rate=35.0, estimated_delivery_days=5),
        ]

    def configure(self, should_succeed: bool = True, failure_reason: str = "Carrier unavailable"):
        """Configure the fake carrier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def _check(self, operation: str):
        if not self.should_succeed:
            raise ExternalProviderFailure(operation, self.failure_reason)

    def create_remote_order(self, snapshot: dict) -> RemoteOrder:
        self._check("create_remote_order")
        self.created.append(snapshot)
        return RemoteOrder(
            remote_order_id=str(uuid4().int)[:9],
            shipment_id=str(uuid4().int)[:9],
        )

    def track_shipment(self, shipment_id: str) -> list[TrackingEvent]:
        self._check("track_shipment")
        now = datetime.now(UTC).isoformat()
        return [
            TrackingEvent(
                status="PICKED_UP",
                location="Warehouse, Mumbai",
                description="Shipment picked up",
                occurred_at=now,
            ),
            TrackingEvent(
                status="IN_TRANSIT",
                location="Hub, Pune",
                description="Shipment in transit",
                occurred_at=now,
            ),
        ]

    def cancel_remote_order(self, remote_order_id: str) -> None:
        self._check("cancel_remote_order")
        self.cancelled.append(remote_order_id)

    def get_shipping_rates(
        self,
        delivery_postcode: str,
        weight: float,
        declared_value: float | None = None,
        cod: bool = False,
    ) -> list[CourierRate]:
        self._check("get_shipping_rates")
        return list(self.rates)

    def verify_webhook_signature(self, payload: bytes, signature: str | None) -> bool:
        # Without a secret every payload is accepted
        if not self.webhook_secret:
            return True
        return verify_signature(payload, signature, self.webhook_secret)
