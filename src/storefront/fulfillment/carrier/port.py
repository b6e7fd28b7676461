"""Carrier port: the interface every shipping provider adapter implements.

Domain code programs against the port; adapters are swapped via the
``CARRIER_ADAPTER`` setting. Adapters raise ``ExternalProviderFailure``
when the provider cannot be reached or rejects a request.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RemoteOrder:
    """Identifiers the provider assigned to a newly created order."""

    remote_order_id: str
    shipment_id: str | None = None
    awb_code: str | None = None


@dataclass(frozen=True)
class CourierRate:
    courier_company_id: str
    courier_name: str
    rate: float
    estimated_delivery_days: int | None = None


@dataclass(frozen=True)
class TrackingEvent:
    status: str
    location: str | None
    description: str | None
    occurred_at: str | None


class CarrierPort(ABC):
    """Abstract interface for shipping provider adapters."""

    @abstractmethod
    def create_remote_order(self, snapshot: dict) -> RemoteOrder:
        """Register a local order with the provider.

        ``snapshot`` carries order_number, order_date, addresses, items,
        payment_mode, sub_total and weight.
        """
        ...

    @abstractmethod
    def track_shipment(self, shipment_id: str) -> list[TrackingEvent]:
        """Tracking history for a shipment, oldest first."""
        ...

    @abstractmethod
    def cancel_remote_order(self, remote_order_id: str) -> None:
        """Cancel the provider-side order."""
        ...

    @abstractmethod
    def get_shipping_rates(
        self,
        delivery_postcode: str,
        weight: float,
        declared_value: float | None = None,
        cod: bool = False,
    ) -> list[CourierRate]:
        """Courier options and their rates for a delivery postcode."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str | None) -> bool:
        """True when ``signature`` authenticates ``payload``."""
        ...
