"""Monetary rounding: two decimal places, half-up."""

from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")


def round_money(value) -> float:
    """Round half-up to 2 places. Goes through ``str`` so 2.675 rounds to 2.68."""
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def format_amount(value) -> str:
    """Render an amount without a trailing ``.0`` for whole numbers."""
    value = round_money(value)
    if value == int(value):
        return str(int(value))
    return f"{value:.2f}"
