"""Runtime settings read from the environment."""

import os


def _float(name: str, default: float) -> float:
    return float(os.environ.get(name, default))


def _int(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


def free_shipping_threshold() -> float:
    return _float("FREE_SHIPPING_THRESHOLD", 100)


def flat_shipping_fee() -> float:
    return _float("FLAT_SHIPPING_FEE", 10)


def tax_rate() -> float:
    return _float("TAX_RATE", 0.08)


def return_window_days() -> int:
    return _int("RETURN_WINDOW_DAYS", 7)


def order_number_start() -> int:
    return _int("ORDER_NUMBER_START", 1001)


def currency() -> str:
    return os.environ.get("CURRENCY", "INR")
