"""Tests for Coupon derived status and its fixed precedence."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError

from storefront.coupon.coupon import Coupon, CouponStatus, normalize_code
from storefront.errors import InvalidCoupon

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)


def _coupon(**overrides):
    defaults = {
        "code": "save20",
        "discount_type": "percentage",
        "discount_value": 20,
        "start_date": NOW - timedelta(days=10),
        "end_date": NOW + timedelta(days=10),
    }
    defaults.update(overrides)
    return Coupon.create(**defaults)


class TestCouponCreation:
    def test_code_is_normalized(self):
        assert _coupon().code == "SAVE20"

    @pytest.mark.parametrize("code", ["ab", "X" * 21, "   "])
    def test_code_length_enforced(self, code):
        with pytest.raises(ValidationError):
            normalize_code(code)

    def test_end_must_follow_start(self):
        with pytest.raises(ValidationError):
            _coupon(start_date=NOW, end_date=NOW - timedelta(days=1))

    def test_percentage_over_100_rejected(self):
        with pytest.raises(ValidationError):
            _coupon(discount_value=120)

    def test_zero_value_rejected(self):
        with pytest.raises(ValidationError):
            _coupon(discount_type="fixed", discount_value=0)

    def test_scope_defaults_to_all_products(self):
        coupon = _coupon()
        assert coupon.applicable_to_all is True
        assert coupon.product_ids == []

    def test_scoped_coupon_is_not_applicable_to_all(self):
        coupon = _coupon(applicable_categories=["Shirts"])
        assert coupon.applicable_to_all is False
        assert coupon.category_names == ["Shirts"]


class TestCouponStatus:
    def test_active_within_window(self):
        assert _coupon().status_at(NOW) == CouponStatus.ACTIVE

    def test_scheduled_before_start(self):
        coupon = _coupon(start_date=NOW + timedelta(days=1), end_date=NOW + timedelta(days=5))
        assert coupon.status_at(NOW) == CouponStatus.SCHEDULED

    def test_expired_after_end(self):
        coupon = _coupon(start_date=NOW - timedelta(days=5), end_date=NOW - timedelta(days=1))
        assert coupon.status_at(NOW) == CouponStatus.EXPIRED

    def test_end_bound_is_inclusive(self):
        coupon = _coupon(end_date=NOW)
        assert coupon.status_at(NOW) == CouponStatus.ACTIVE

    def test_inactive_takes_precedence_over_expired(self):
        coupon = _coupon(
            is_active=False,
            start_date=NOW - timedelta(days=5),
            end_date=NOW - timedelta(days=1),
        )
        assert coupon.status_at(NOW) == CouponStatus.INACTIVE

    def test_limit_reached(self):
        coupon = _coupon(usage_limit=1)
        coupon.redeem("cust-001", "order-001")
        assert coupon.status_at(NOW) == CouponStatus.LIMIT_REACHED
        assert coupon.remaining_uses() == 0

    def test_naive_datetimes_are_treated_as_utc(self):
        assert _coupon().status_at(NOW.replace(tzinfo=None)) == CouponStatus.ACTIVE


class TestCouponRedemption:
    def test_redeem_increments_usage(self):
        coupon = _coupon(usage_limit=5)
        coupon.redeem("cust-001", "order-001")
        assert coupon.usage_count == 1
        assert coupon.redemptions_by("cust-001") == 1
        assert coupon.remaining_uses() == 4

    def test_redeem_past_limit_raises(self):
        coupon = _coupon(usage_limit=1)
        coupon.redeem("cust-001", "order-001")
        with pytest.raises(InvalidCoupon) as exc:
            coupon.redeem("cust-002", "order-002")
        assert exc.value.reason == "Coupon usage limit reached"
        assert coupon.usage_count == 1

    def test_unlimited_coupon_has_no_remaining_count(self):
        assert _coupon().remaining_uses() is None

    def test_toggle_flips_active_flag(self):
        coupon = _coupon()
        coupon.toggle()
        assert coupon.is_active is False
        assert coupon.status_at(NOW) == CouponStatus.INACTIVE
