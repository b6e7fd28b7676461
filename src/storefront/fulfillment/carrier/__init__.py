"""Carrier adapter abstraction: pluggable shipping provider integration."""

import os

from storefront.fulfillment.carrier.port import CarrierPort

_carrier_instance: CarrierPort | None = None


def get_carrier() -> CarrierPort:
    """Return the configured carrier adapter (singleton).

    Uses FakeCarrier by default. In production, set CARRIER_ADAPTER=shiprocket
    along with the SHIPROCKET_* credentials.
    """
    global _carrier_instance
    if _carrier_instance is None:
        adapter = os.environ.get("CARRIER_ADAPTER", "fake")
        if adapter == "fake":
            from storefront.fulfillment.carrier.fake_adapter import FakeCarrier

            _carrier_instance = FakeCarrier(webhook_secret=os.environ.get("SHIPROCKET_WEBHOOK_SECRET"))
        elif adapter == "shiprocket":
            from storefront.fulfillment.carrier.shiprocket_adapter import DEFAULT_BASE_URL, ShiprocketCarrier

            _carrier_instance = ShiprocketCarrier(
                email=os.environ["SHIPROCKET_EMAIL"],
                password=os.environ["SHIPROCKET_PASSWORD"],
                base_url=os.environ.get("SHIPROCKET_BASE_URL", DEFAULT_BASE_URL),
                pickup_location=os.environ.get("SHIPROCKET_PICKUP_LOCATION", "Primary"),
                pickup_postcode=os.environ.get("SHIPROCKET_PICKUP_POSTCODE"),
                channel_id=os.environ.get("SHIPROCKET_CHANNEL_ID"),
                webhook_secret=os.environ.get("SHIPROCKET_WEBHOOK_SECRET"),
            )
        else:
            raise ValueError(f"Unknown carrier adapter: {adapter}")
    return _carrier_instance


def set_carrier(carrier: CarrierPort) -> None:
    """Override the active carrier (useful for tests)."""
    global _carrier_instance
    _carrier_instance = carrier


def reset_carrier() -> None:
    """Reset the carrier singleton (useful for testing)."""
    global _carrier_instance
    _carrier_instance = None
