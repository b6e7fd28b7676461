"""Provider shipment vocabulary and its mapping onto order statuses.

Provider statuses that are not listed parse to ``UNKNOWN``. They are
recorded verbatim on the order but never move its canonical status.
"""

from enum import Enum

from storefront.order.order import OrderStatus


class ProviderStatus(Enum):
    PICKUP_SCHEDULED = "PICKUP_SCHEDULED"
    PICKED_UP = "PICKED_UP"
    SHIPPED = "SHIPPED"
    IN_TRANSIT = "IN_TRANSIT"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    RTO = "RTO"
    RTO_INITIATED = "RTO_INITIATED"
    RTO_DELIVERED = "RTO_DELIVERED"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw) -> "ProviderStatus":
        normalized = str(raw or "").strip().upper().replace("-", "_").replace(" ", "_")
        try:
            return cls(normalized)
        except ValueError:
            return cls.UNKNOWN


PROVIDER_TO_ORDER_STATUS = {
    ProviderStatus.PICKUP_SCHEDULED: OrderStatus.CONFIRMED,
    ProviderStatus.PICKED_UP: OrderStatus.PROCESSING,
    ProviderStatus.SHIPPED: OrderStatus.SHIPPED,
    ProviderStatus.IN_TRANSIT: OrderStatus.SHIPPED,
    ProviderStatus.OUT_FOR_DELIVERY: OrderStatus.SHIPPED,
    ProviderStatus.DELIVERED: OrderStatus.DELIVERED,
    ProviderStatus.RTO: OrderStatus.CANCELLED,
    ProviderStatus.RTO_INITIATED: OrderStatus.CANCELLED,
    ProviderStatus.RTO_DELIVERED: OrderStatus.CANCELLED,
    ProviderStatus.CANCELLED: OrderStatus.CANCELLED,
}


def to_order_status(status: ProviderStatus) -> OrderStatus | None:
    return PROVIDER_TO_ORDER_STATUS.get(status)
