"""Customer-facing coupon views: previewing a code and listing current offers.

Neither view consumes a use.
"""

from dataclasses import dataclass
from datetime import datetime

from protean.utils.globals import current_domain

from storefront.catalog.stock import get_product
from storefront.coupon.coupon import Coupon, CouponStatus, DiscountType, find_coupon
from storefront.coupon.evaluator import OrderContext, calculate_discount, validate
from storefront.errors import InvalidCoupon
from storefront.order.order import count_orders_for
from storefront.utils.dates import as_utc, utcnow
from storefront.utils.money import format_amount


@dataclass(frozen=True)
class CouponPreview:
    code: str
    description: str | None
    discount_type: str
    discount_value: float
    discount_amount: float
    final_amount: float
    free_shipping: bool


def build_context(customer_id=None, products=(), now=None) -> OrderContext:
    """Order context for ``products`` (Product aggregates) bought by ``customer_id``."""
    return OrderContext(
        now=now or utcnow(),
        customer_id=str(customer_id) if customer_id else None,
        product_ids=tuple(str(p.id) for p in products),
        categories=tuple(p.category for p in products if p.category),
        prior_orders=count_orders_for(customer_id) if customer_id else None,
    )


def validate_coupon(code, order_amount, customer_id=None, product_ids=(), now=None) -> CouponPreview:
    """Raises ``NotFound`` for unknown codes and ``InvalidCoupon`` with the reason otherwise."""
    coupon = find_coupon(code)
    products = [get_product(product_id) for product_id in product_ids]
    context = build_context(customer_id, products, now)

    verdict = validate(coupon, context)
    if not verdict.valid:
        raise InvalidCoupon(verdict.reason)

    discount = calculate_discount(coupon, order_amount)
    if not discount.valid:
        raise InvalidCoupon(discount.reason)

    return CouponPreview(
        code=coupon.code,
        description=coupon.description,
        discount_type=coupon.discount_type,
        discount_value=coupon.discount_value,
        discount_amount=discount.discount_amount,
        final_amount=discount.final_amount,
        free_shipping=bool(coupon.free_shipping),
    )


@dataclass(frozen=True)
class ActiveOffer:
    coupon_id: str
    code: str
    title: str
    description: str
    discount_type: str
    discount_value: float
    minimum_purchase: float
    maximum_discount: float | None
    end_date: datetime
    terms: list[str]


def list_active_coupons(now=None) -> list[ActiveOffer]:
    """Coupons a customer can use right now, newest first."""
    now = now or utcnow()
    repo = current_domain.repository_for(Coupon)
    coupons = [c for c in repo._dao.query.filter(is_active=True).all().items if c.status_at(now) == CouponStatus.ACTIVE]
    coupons.sort(key=lambda c: as_utc(c.created_at), reverse=True)
    return [_offer(coupon) for coupon in coupons]


def _offer(coupon: Coupon) -> ActiveOffer:
    if coupon.discount_type == DiscountType.PERCENTAGE.value:
        amount = f"{format_amount(coupon.discount_value)}%"
    else:
        amount = f"₹{format_amount(coupon.discount_value)}"

    end_date = as_utc(coupon.end_date)
    terms = [f"Valid on minimum purchase of ₹{format_amount(coupon.minimum_purchase or 0)}"]
    if coupon.maximum_discount:
        terms.append(f"Maximum discount ₹{format_amount(coupon.maximum_discount)}")
    terms.append(f"Valid till {end_date.day} {end_date:%b %Y}")

    return ActiveOffer(
        coupon_id=str(coupon.id),
        code=coupon.code,
        title=f"{amount} Off",
        description=coupon.description or f"Get {amount} discount",
        discount_type=coupon.discount_type,
        discount_value=coupon.discount_value,
        minimum_purchase=coupon.minimum_purchase or 0.0,
        maximum_discount=coupon.maximum_discount,
        end_date=end_date,
        terms=terms,
    )
