"""Coupon evaluation: pure functions over a coupon and the order context.

Neither function mutates the coupon. Consuming a use is
``Coupon.redeem``'s job, called once the order is being committed.
"""

from dataclasses import dataclass
from datetime import datetime

from storefront.coupon.coupon import Coupon, CouponStatus, DiscountType
from storefront.utils.money import format_amount, round_money

_STATUS_REASONS = {
    CouponStatus.INACTIVE: "Coupon is not active",
    CouponStatus.SCHEDULED: "Coupon is not yet valid",
    CouponStatus.EXPIRED: "Coupon has expired",
    CouponStatus.LIMIT_REACHED: "Coupon usage limit reached",
}


@dataclass(frozen=True)
class OrderContext:
    """What a coupon is checked against.

    ``prior_orders`` of None means the customer's history is unknown and
    the first-time-customer rule is not evaluated.
    """

    now: datetime
    customer_id: str | None = None
    product_ids: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    prior_orders: int | None = None


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: str | None = None


@dataclass(frozen=True)
class DiscountResult:
    valid: bool
    discount_amount: float
    final_amount: float
    reason: str | None = None


def validate(coupon: Coupon, context: OrderContext) -> ValidationResult:
    """Check a coupon in fixed order; the first failure wins."""
    status = coupon.status_at(context.now)
    if status != CouponStatus.ACTIVE:
        return ValidationResult(False, _STATUS_REASONS[status])

    if context.product_ids:
        excluded = set(coupon.excluded_product_ids)
        if excluded.intersection(context.product_ids):
            return ValidationResult(False, "Coupon cannot be applied to some items in your order")

        if not coupon.applicable_to_all:
            products = set(coupon.product_ids)
            categories = set(coupon.category_names)
            if not (products.intersection(context.product_ids) or categories.intersection(context.categories)):
                return ValidationResult(False, "Coupon is not applicable to the items in your order")

    if (
        coupon.per_user_limit is not None
        and context.customer_id is not None
        and coupon.redemptions_by(context.customer_id) >= coupon.per_user_limit
    ):
        return ValidationResult(False, "You have already used this coupon")

    if coupon.first_time_user_only and context.prior_orders:
        return ValidationResult(False, "Coupon is only valid for first-time customers")

    return ValidationResult(True)


def calculate_discount(coupon: Coupon, order_amount: float) -> DiscountResult:
    """Discount for ``order_amount``, clamped to the cap and the amount itself.

    Rounded half-up to 2 places; ``final_amount`` is computed from the
    rounded discount so the two always add back to ``order_amount``.
    """
    minimum = coupon.minimum_purchase or 0.0
    if order_amount < minimum:
        return DiscountResult(
            valid=False,
            discount_amount=0.0,
            final_amount=round_money(order_amount),
            reason=f"Minimum purchase of ₹{format_amount(minimum)} required",
        )

    if coupon.discount_type == DiscountType.PERCENTAGE.value:
        discount = order_amount * coupon.discount_value / 100
        if coupon.maximum_discount is not None:
            discount = min(discount, coupon.maximum_discount)
    else:
        discount = coupon.discount_value

    discount = round_money(min(discount, order_amount))
    return DiscountResult(
        valid=True,
        discount_amount=discount,
        final_amount=round_money(order_amount - discount),
    )
