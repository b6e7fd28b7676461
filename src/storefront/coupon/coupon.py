"""Coupon aggregate: discount rules, validity window, usage accounting.

Status is derived, never stored. The precedence is fixed: an inactive
coupon reports ``inactive`` even when its window has also passed.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import InvalidCoupon, NotFound
from storefront.utils.dates import as_utc


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CouponStatus(Enum):
    INACTIVE = "inactive"
    SCHEDULED = "scheduled"
    EXPIRED = "expired"
    LIMIT_REACHED = "limit_reached"
    ACTIVE = "active"


def normalize_code(code) -> str:
    normalized = (code or "").strip().upper()
    if not 3 <= len(normalized) <= 20:
        raise ValidationError({"code": ["Coupon code must be between 3 and 20 characters"]})
    return normalized


@storefront.entity(part_of="Coupon")
class CouponRedemption:
    customer_id = Identifier(required=True)
    order_id = Identifier(required=True)
    redeemed_at = DateTime()


@storefront.aggregate
class Coupon:
    code = String(required=True, max_length=20)
    description = String(max_length=255)
    discount_type = String(choices=DiscountType, required=True)
    discount_value = Float(required=True)
    minimum_purchase = Float(default=0.0, min_value=0.0)
    maximum_discount = Float(min_value=0.0)
    usage_limit = Integer(min_value=1)
    usage_count = Integer(default=0, min_value=0)
    per_user_limit = Integer(min_value=1)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    is_active = Boolean(default=True)
    applicable_to_all = Boolean(default=True)
    applicable_products = Text()  # JSON array of product ids
    applicable_categories = Text()  # JSON array of category names
    excluded_products = Text()  # JSON array of product ids
    first_time_user_only = Boolean(default=False)
    free_shipping = Boolean(default=False)
    redemptions = HasMany(CouponRedemption)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def end_date_must_follow_start_date(self):
        if self.start_date and self.end_date and as_utc(self.end_date) <= as_utc(self.start_date):
            raise ValidationError({"end_date": ["End date must be after start date"]})

    @invariant.post
    def discount_value_must_fit_discount_type(self):
        if self.discount_value is None or self.discount_value <= 0:
            raise ValidationError({"discount_value": ["Discount value must be greater than 0"]})
        if self.discount_type == DiscountType.PERCENTAGE.value and self.discount_value > 100:
            raise ValidationError({"discount_value": ["Percentage discount cannot exceed 100"]})

    @invariant.post
    def usage_count_cannot_exceed_limit(self):
        if self.usage_limit is not None and self.usage_count > self.usage_limit:
            raise ValidationError({"usage_count": ["Usage count cannot exceed usage limit"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        code,
        discount_type,
        discount_value,
        start_date,
        end_date,
        description=None,
        minimum_purchase=0.0,
        maximum_discount=None,
        usage_limit=None,
        per_user_limit=None,
        is_active=True,
        applicable_products=None,
        applicable_categories=None,
        excluded_products=None,
        first_time_user_only=False,
        free_shipping=False,
    ):
        from storefront.coupon.events import CouponCreated

        now = datetime.now(UTC)
        products = list(applicable_products or [])
        categories = list(applicable_categories or [])
        coupon = cls(
            code=normalize_code(code),
            description=description,
            discount_type=discount_type,
            discount_value=discount_value,
            minimum_purchase=minimum_purchase or 0.0,
            maximum_discount=maximum_discount,
            usage_limit=usage_limit,
            usage_count=0,
            per_user_limit=per_user_limit,
            start_date=start_date,
            end_date=end_date,
            is_active=is_active,
            applicable_to_all=not (products or categories),
            applicable_products=json.dumps(products),
            applicable_categories=json.dumps(categories),
            excluded_products=json.dumps(list(excluded_products or [])),
            first_time_user_only=first_time_user_only,
            free_shipping=free_shipping,
            created_at=now,
            updated_at=now,
        )
        coupon.raise_(
            CouponCreated(
                coupon_id=coupon.id,
                code=coupon.code,
                discount_type=discount_type,
                discount_value=discount_value,
            )
        )
        return coupon

    # -------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------
    def status_at(self, now: datetime) -> CouponStatus:
        now = as_utc(now)
        if not self.is_active:
            return CouponStatus.INACTIVE
        if now < as_utc(self.start_date):
            return CouponStatus.SCHEDULED
        if now > as_utc(self.end_date):
            return CouponStatus.EXPIRED
        if self.usage_limit is not None and self.usage_count >= self.usage_limit:
            return CouponStatus.LIMIT_REACHED
        return CouponStatus.ACTIVE

    def remaining_uses(self) -> int | None:
        if self.usage_limit is None:
            return None
        return max(0, self.usage_limit - self.usage_count)

    @property
    def product_ids(self) -> list[str]:
        return json.loads(self.applicable_products) if self.applicable_products else []

    @property
    def category_names(self) -> list[str]:
        return json.loads(self.applicable_categories) if self.applicable_categories else []

    @property
    def excluded_product_ids(self) -> list[str]:
        return json.loads(self.excluded_products) if self.excluded_products else []

    def redemptions_by(self, customer_id) -> int:
        return sum(1 for r in self.redemptions if str(r.customer_id) == str(customer_id))

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def redeem(self, customer_id, order_id):
        """Consume one use. Conditional on the usage limit; the version check on save keeps it atomic."""
        from storefront.coupon.events import CouponRedeemed

        if self.usage_limit is not None and self.usage_count >= self.usage_limit:
            raise InvalidCoupon("Coupon usage limit reached")

        now = datetime.now(UTC)
        with atomic_change(self):
            self.usage_count += 1
            self.add_redemptions(
                CouponRedemption(customer_id=customer_id, order_id=order_id, redeemed_at=now)
            )
        self.updated_at = now

        self.raise_(
            CouponRedeemed(
                coupon_id=self.id,
                code=self.code,
                customer_id=customer_id,
                order_id=order_id,
                usage_count=self.usage_count,
            )
        )

    def update(self, **changes):
        """Apply a partial update. List fields accept python lists."""
        from storefront.coupon.events import CouponUpdated

        with atomic_change(self):
            for name in ("applicable_products", "applicable_categories", "excluded_products"):
                if name in changes and changes[name] is not None:
                    changes[name] = json.dumps(list(changes[name]))
            for name, value in changes.items():
                if value is not None:
                    setattr(self, name, value)
            if "applicable_products" in changes or "applicable_categories" in changes:
                self.applicable_to_all = not (self.product_ids or self.category_names)

        self.updated_at = datetime.now(UTC)
        self.raise_(CouponUpdated(coupon_id=self.id, code=self.code))

    def toggle(self):
        from storefront.coupon.events import CouponToggled

        self.is_active = not self.is_active
        self.updated_at = datetime.now(UTC)
        self.raise_(CouponToggled(coupon_id=self.id, code=self.code, is_active=self.is_active))


def find_coupon(code) -> Coupon:
    """Look a coupon up by its normalized code."""
    normalized = (code or "").strip().upper()
    repo = current_domain.repository_for(Coupon)
    matches = repo._dao.query.filter(code=normalized).all().items
    if not matches:
        raise NotFound("coupon", normalized)
    return matches[0]
