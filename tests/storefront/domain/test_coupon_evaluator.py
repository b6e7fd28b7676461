"""Tests for coupon validation order and discount calculation."""

from datetime import UTC, datetime, timedelta

import pytest

from storefront.coupon.coupon import Coupon
from storefront.coupon.evaluator import OrderContext, calculate_discount, validate

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)


def _coupon(**overrides):
    defaults = {
        "code": "SAVE20",
        "discount_type": "percentage",
        "discount_value": 20,
        "minimum_purchase": 500,
        "maximum_discount": 1000,
        "start_date": NOW - timedelta(days=10),
        "end_date": NOW + timedelta(days=10),
    }
    defaults.update(overrides)
    return Coupon.create(**defaults)


class TestCalculateDiscount:
    def test_percentage_discount(self):
        result = calculate_discount(_coupon(), 3000)
        assert result.valid
        assert result.discount_amount == 600.0
        assert result.final_amount == 2400.0

    def test_percentage_discount_is_capped(self):
        result = calculate_discount(_coupon(), 10000)
        assert result.discount_amount == 1000.0
        assert result.final_amount == 9000.0

    def test_fixed_discount(self):
        coupon = _coupon(discount_type="fixed", discount_value=150, maximum_discount=None)
        result = calculate_discount(coupon, 800)
        assert result.discount_amount == 150.0
        assert result.final_amount == 650.0

    def test_fixed_discount_never_exceeds_amount(self):
        coupon = _coupon(discount_type="fixed", discount_value=500, minimum_purchase=0)
        result = calculate_discount(coupon, 300)
        assert result.discount_amount == 300.0
        assert result.final_amount == 0.0

    def test_below_minimum_purchase(self):
        result = calculate_discount(_coupon(), 499)
        assert not result.valid
        assert result.discount_amount == 0.0
        assert result.final_amount == 499.0
        assert result.reason == "Minimum purchase of ₹500 required"

    def test_rounds_half_up(self):
        coupon = _coupon(discount_value=10, minimum_purchase=0, maximum_discount=None)
        result = calculate_discount(coupon, 26.25)
        assert result.discount_amount == 2.63
        assert result.final_amount == 23.62

    def test_is_pure(self):
        coupon = _coupon(usage_limit=3)
        first = calculate_discount(coupon, 3000)
        second = calculate_discount(coupon, 3000)
        assert first == second
        assert coupon.usage_count == 0


class TestValidate:
    def test_active_coupon_is_valid(self):
        assert validate(_coupon(), OrderContext(now=NOW)).valid

    @pytest.mark.parametrize(
        ("overrides", "reason"),
        [
            ({"is_active": False}, "Coupon is not active"),
            (
                {"start_date": NOW + timedelta(days=1), "end_date": NOW + timedelta(days=2)},
                "Coupon is not yet valid",
            ),
            (
                {"start_date": NOW - timedelta(days=2), "end_date": NOW - timedelta(days=1)},
                "Coupon has expired",
            ),
        ],
    )
    def test_status_failures(self, overrides, reason):
        verdict = validate(_coupon(**overrides), OrderContext(now=NOW))
        assert not verdict.valid
        assert verdict.reason == reason

    def test_excluded_product_invalidates(self):
        coupon = _coupon(excluded_products=["prod-sale"])
        verdict = validate(coupon, OrderContext(now=NOW, product_ids=("prod-1", "prod-sale")))
        assert not verdict.valid
        assert "cannot be applied" in verdict.reason

    def test_out_of_scope_products(self):
        coupon = _coupon(applicable_products=["prod-1"])
        verdict = validate(coupon, OrderContext(now=NOW, product_ids=("prod-2",), categories=("Shoes",)))
        assert not verdict.valid
        assert "not applicable" in verdict.reason

    def test_category_scope_matches(self):
        coupon = _coupon(applicable_categories=["Shirts"])
        verdict = validate(coupon, OrderContext(now=NOW, product_ids=("prod-2",), categories=("Shirts",)))
        assert verdict.valid

    def test_per_user_limit(self):
        coupon = _coupon(per_user_limit=1)
        coupon.redeem("cust-001", "order-001")
        verdict = validate(coupon, OrderContext(now=NOW, customer_id="cust-001"))
        assert verdict.reason == "You have already used this coupon"
        assert validate(coupon, OrderContext(now=NOW, customer_id="cust-002")).valid

    def test_no_per_user_limit_by_default(self):
        coupon = _coupon()
        assert coupon.per_user_limit is None
        coupon.redeem("cust-001", "order-001")
        coupon.redeem("cust-001", "order-002")
        assert validate(coupon, OrderContext(now=NOW, customer_id="cust-001")).valid

    def test_first_time_customer_rule(self):
        coupon = _coupon(first_time_user_only=True)
        assert validate(coupon, OrderContext(now=NOW, customer_id="cust-001", prior_orders=0)).valid
        verdict = validate(coupon, OrderContext(now=NOW, customer_id="cust-001", prior_orders=2))
        assert not verdict.valid
        assert "first-time" in verdict.reason

    def test_status_checked_before_scope(self):
        coupon = _coupon(is_active=False, applicable_products=["prod-1"])
        verdict = validate(coupon, OrderContext(now=NOW, product_ids=("prod-2",)))
        assert verdict.reason == "Coupon is not active"
