"""Eligibility window for exchanges and returns, counted from delivery."""

from datetime import datetime, timedelta

from storefront import settings
from storefront.errors import InvalidState, WindowExpired
from storefront.order.order import Order, OrderStatus
from storefront.utils.dates import as_utc, utcnow


def check_window(order: Order, now: datetime | None = None, days: int | None = None) -> None:
    """Accept only delivered orders with ``now - delivered_at <= days``."""
    if order.status != OrderStatus.DELIVERED.value or order.delivered_at is None:
        raise InvalidState("Exchanges and returns are only available for delivered orders")

    days = settings.return_window_days() if days is None else days
    now = as_utc(now) if now else utcnow()
    if now - as_utc(order.delivered_at) > timedelta(days=days):
        raise WindowExpired(days)
