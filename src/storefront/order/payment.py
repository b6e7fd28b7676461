"""Payment methods as a closed set of variants.

Each function below matches every variant explicitly and raises
``TypeError`` for anything else, so adding a variant fails loudly until
every branch handles it.
"""

from dataclasses import dataclass
from enum import Enum

from protean.exceptions import ValidationError


class PaymentMethodKind(Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"
    CARD = "card"
    UPI = "upi"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


@dataclass(frozen=True)
class CashOnDelivery:
    pass


@dataclass(frozen=True)
class Card:
    last4: str

    def __post_init__(self):
        if not (len(self.last4) == 4 and self.last4.isdigit()):
            raise ValidationError({"card_last4": ["Card last4 must be exactly 4 digits"]})


@dataclass(frozen=True)
class Upi:
    handle: str

    def __post_init__(self):
        if "@" not in self.handle:
            raise ValidationError({"upi_handle": ["UPI handle must look like name@bank"]})


PaymentMethod = CashOnDelivery | Card | Upi


def parse_payment_method(kind, card_last4=None, upi_handle=None) -> PaymentMethod:
    """Build a payment method from its wire form (``kind`` plus its detail)."""
    try:
        kind = PaymentMethodKind(kind)
    except ValueError:
        raise ValidationError({"payment_method": [f"Unknown payment method: {kind}"]}) from None

    if kind == PaymentMethodKind.CASH_ON_DELIVERY:
        return CashOnDelivery()
    if kind == PaymentMethodKind.CARD:
        if not card_last4:
            raise ValidationError({"card_last4": ["Card payments require the card's last 4 digits"]})
        return Card(last4=card_last4[-4:])
    if not upi_handle:
        raise ValidationError({"upi_handle": ["UPI payments require a UPI handle"]})
    return Upi(handle=upi_handle)


def kind_of(method: PaymentMethod) -> PaymentMethodKind:
    if isinstance(method, CashOnDelivery):
        return PaymentMethodKind.CASH_ON_DELIVERY
    if isinstance(method, Card):
        return PaymentMethodKind.CARD
    if isinstance(method, Upi):
        return PaymentMethodKind.UPI
    raise TypeError(f"Unsupported payment method: {method!r}")


def detail_of(method: PaymentMethod) -> str | None:
    if isinstance(method, CashOnDelivery):
        return None
    if isinstance(method, Card):
        return method.last4
    if isinstance(method, Upi):
        return method.handle
    raise TypeError(f"Unsupported payment method: {method!r}")


def describe(method: PaymentMethod) -> str:
    if isinstance(method, CashOnDelivery):
        return "Cash on Delivery"
    if isinstance(method, Card):
        return f"Card (XXXX XXXX XXXX {method.last4})"
    if isinstance(method, Upi):
        return f"UPI ({method.handle})"
    raise TypeError(f"Unsupported payment method: {method!r}")


def provider_payment_mode(method: PaymentMethod) -> str:
    """Payment mode as the shipping provider expects it."""
    if isinstance(method, CashOnDelivery):
        return "COD"
    if isinstance(method, Card | Upi):
        return "Prepaid"
    raise TypeError(f"Unsupported payment method: {method!r}")


def settles_on_delivery(method: PaymentMethod) -> bool:
    if isinstance(method, CashOnDelivery):
        return True
    if isinstance(method, Card | Upi):
        return False
    raise TypeError(f"Unsupported payment method: {method!r}")


def restore(kind, detail) -> PaymentMethod:
    """Rebuild a payment method from its persisted columns."""
    kind = PaymentMethodKind(kind)
    if kind == PaymentMethodKind.CASH_ON_DELIVERY:
        return CashOnDelivery()
    if kind == PaymentMethodKind.CARD:
        return Card(last4=detail)
    return Upi(handle=detail)
