"""Application tests for coupon management commands, the validation preview and active offers."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

from storefront.coupon.coupon import Coupon, find_coupon
from storefront.coupon.management import CreateCoupon, delete_coupon, toggle_coupon, update_coupon
from storefront.coupon.preview import list_active_coupons, validate_coupon
from storefront.errors import InvalidCoupon, NotFound
from storefront.order.order import Order

NOW = datetime.now(UTC)


def _create_coupon(**overrides):
    defaults = {
        "code": "save20",
        "discount_type": "percentage",
        "discount_value": 20,
        "minimum_purchase": 500,
        "maximum_discount": 1000,
        "start_date": NOW - timedelta(days=1),
        "end_date": NOW + timedelta(days=30),
    }
    defaults.update(overrides)
    return current_domain.process(CreateCoupon(**defaults), asynchronous=False)


class TestCreateCoupon:
    def test_create_persists_normalized_code(self):
        coupon_id = _create_coupon()
        coupon = current_domain.repository_for(Coupon).get(coupon_id)
        assert coupon.code == "SAVE20"
        assert coupon.usage_count == 0

    def test_duplicate_code_rejected(self):
        _create_coupon()
        with pytest.raises(ValidationError) as exc:
            _create_coupon(code="SAVE20 ")
        assert exc.value.messages == {"code": ["Coupon code already exists"]}

    def test_scope_lists(self):
        coupon_id = _create_coupon(
            code="SHIRTS10",
            applicable_categories=json.dumps(["Shirts"]),
            excluded_products=json.dumps(["prod-sale"]),
        )
        coupon = current_domain.repository_for(Coupon).get(coupon_id)
        assert coupon.category_names == ["Shirts"]
        assert coupon.excluded_product_ids == ["prod-sale"]
        assert coupon.applicable_to_all is False


class TestUpdateAndToggle:
    def test_update_changes_only_given_fields(self):
        coupon_id = _create_coupon()
        update_coupon(coupon_id, discount_value=25, applicable_products=json.dumps(["prod-1"]))
        coupon = current_domain.repository_for(Coupon).get(coupon_id)
        assert coupon.discount_value == 25
        assert coupon.minimum_purchase == 500
        assert coupon.product_ids == ["prod-1"]
        assert coupon.applicable_to_all is False

    def test_update_cannot_break_invariants(self):
        coupon_id = _create_coupon()
        with pytest.raises(ValidationError):
            update_coupon(coupon_id, discount_value=150)

    def test_toggle(self):
        coupon_id = _create_coupon()
        assert toggle_coupon(coupon_id) is False
        assert toggle_coupon(coupon_id) is True



class TestDeleteCoupon:
    def test_delete_removes_coupon(self):
        coupon_id = _create_coupon()
        delete_coupon(coupon_id)
        with pytest.raises(NotFound):
            find_coupon("SAVE20")

    def test_code_can_be_reused_after_delete(self):
        delete_coupon(_create_coupon())
        assert _create_coupon()

    def test_orders_keep_the_code_of_a_deleted_coupon(self, make_product, place_order):
        product = make_product(variants=[("Black", "M", 5)])
        coupon_id = _create_coupon()
        order = place_order(product, coupon_code="SAVE20")

        delete_coupon(coupon_id)

        stored = current_domain.repository_for(Order).get(order.id)
        assert stored.coupon_code == "SAVE20"
        assert stored.pricing.discount == 200.0

    def test_unknown_coupon(self):
        with pytest.raises(ObjectNotFoundError):
            delete_coupon("missing")


class TestValidateCoupon:
    def test_preview(self):
        _create_coupon()
        preview = validate_coupon("save20", 3000)
        assert preview.code == "SAVE20"
        assert preview.discount_amount == 600.0
        assert preview.final_amount == 2400.0

    def test_preview_does_not_consume_a_use(self):
        _create_coupon(usage_limit=1)
        validate_coupon("SAVE20", 3000)
        validate_coupon("SAVE20", 3000)
        assert find_coupon("SAVE20").usage_count == 0

    def test_unknown_code(self):
        with pytest.raises(NotFound):
            validate_coupon("NOPE99", 3000)

    def test_inactive_coupon_reason(self):
        coupon_id = _create_coupon()
        toggle_coupon(coupon_id)
        with pytest.raises(InvalidCoupon) as exc:
            validate_coupon("SAVE20", 3000)
        assert exc.value.reason == "Coupon is not active"

    def test_product_scope_uses_catalog(self, make_product):
        shirt = make_product(category="Shirts")
        shoes = make_product(name="Runner", category="Shoes")
        _create_coupon(applicable_categories=json.dumps(["Shirts"]))

        assert validate_coupon("SAVE20", 3000, product_ids=[str(shirt.id)]).discount_amount == 600.0
        with pytest.raises(InvalidCoupon):
            validate_coupon("SAVE20", 3000, product_ids=[str(shoes.id)])


class TestActiveCoupons:
    def test_only_currently_usable_coupons(self, make_product, place_order):
        _create_coupon(code="SAVE20")
        toggle_coupon(_create_coupon(code="PAUSED10"))
        _create_coupon(code="OLD10", start_date=NOW - timedelta(days=10), end_date=NOW - timedelta(days=1))
        _create_coupon(code="SOON10", start_date=NOW + timedelta(days=1), end_date=NOW + timedelta(days=10))
        _create_coupon(code="ONCE10", usage_limit=1, minimum_purchase=0)
        place_order(make_product(variants=[("Black", "M", 5)]), coupon_code="ONCE10")

        assert [offer.code for offer in list_active_coupons()] == ["SAVE20"]

    def test_newest_first(self):
        _create_coupon(code="FIRST10")
        _create_coupon(code="SECOND10")
        assert [offer.code for offer in list_active_coupons()] == ["SECOND10", "FIRST10"]

    def test_percentage_offer_wording(self):
        _create_coupon()
        offer = list_active_coupons()[0]
        assert offer.title == "20% Off"
        assert offer.description == "Get 20% discount"
        assert offer.terms[:2] == ["Valid on minimum purchase of ₹500", "Maximum discount ₹1000"]
        assert offer.terms[2].startswith("Valid till ")

    def test_fixed_offer_wording(self):
        _create_coupon(code="FLAT150", discount_type="fixed", discount_value=150, maximum_discount=None, description="Flat off")
        offer = list_active_coupons()[0]
        assert offer.title == "₹150 Off"
        assert offer.description == "Flat off"
        assert len(offer.terms) == 2
