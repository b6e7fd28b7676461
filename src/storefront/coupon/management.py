"""Coupon management: create, update, toggle and delete coupons."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon, CouponRedemption, DiscountType, normalize_code
from storefront.domain import logger, storefront


def _json_list(value):
    if value is None:
        return None
    return json.loads(value) if isinstance(value, str) else list(value)


@storefront.command(part_of="Coupon")
class CreateCoupon:
    code = String(required=True, max_length=20)
    description = String(max_length=255)
    discount_type = String(choices=DiscountType, required=True)
    discount_value = Float(required=True)
    minimum_purchase = Float(default=0.0)
    maximum_discount = Float()
    usage_limit = Integer(min_value=1)
    per_user_limit = Integer(min_value=1)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    is_active = Boolean(default=True)
    applicable_products = Text()  # JSON array
    applicable_categories = Text()  # JSON array
    excluded_products = Text()  # JSON array
    first_time_user_only = Boolean(default=False)
    free_shipping = Boolean(default=False)


@storefront.command(part_of="Coupon")
class UpdateCoupon:
    coupon_id = Identifier(required=True)
    description = String(max_length=255)
    discount_value = Float()
    minimum_purchase = Float()
    maximum_discount = Float()
    usage_limit = Integer(min_value=1)
    per_user_limit = Integer(min_value=1)
    start_date = DateTime()
    end_date = DateTime()
    applicable_products = Text()  # JSON array
    applicable_categories = Text()  # JSON array
    excluded_products = Text()  # JSON array
    first_time_user_only = Boolean()
    free_shipping = Boolean()


_UPDATABLE_FIELDS = (
    "description",
    "discount_value",
    "minimum_purchase",
    "maximum_discount",
    "usage_limit",
    "per_user_limit",
    "start_date",
    "end_date",
    "applicable_products",
    "applicable_categories",
    "excluded_products",
    "first_time_user_only",
    "free_shipping",
)


@storefront.command(part_of="Coupon")
class ToggleCoupon:
    coupon_id = Identifier(required=True)


@storefront.command(part_of="Coupon")
class DeleteCoupon:
    coupon_id = Identifier(required=True)


@storefront.command_handler(part_of=Coupon)
class CouponManagementHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        code = normalize_code(command.code)
        if repo._dao.query.filter(code=code).all().items:
            raise ValidationError({"code": ["Coupon code already exists"]})

        coupon = Coupon.create(
            code=code,
            description=command.description,
            discount_type=command.discount_type,
            discount_value=command.discount_value,
            minimum_purchase=command.minimum_purchase,
            maximum_discount=command.maximum_discount,
            usage_limit=command.usage_limit,
            per_user_limit=command.per_user_limit,
            start_date=command.start_date,
            end_date=command.end_date,
            is_active=command.is_active,
            applicable_products=_json_list(command.applicable_products),
            applicable_categories=_json_list(command.applicable_categories),
            excluded_products=_json_list(command.excluded_products),
            first_time_user_only=command.first_time_user_only,
            free_shipping=command.free_shipping,
        )
        repo.add(coupon)
        logger.info("coupon_created", code=code, coupon_id=str(coupon.id))
        return str(coupon.id)

    @handle(UpdateCoupon)
    def update_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        changes = {name: getattr(command, name) for name in _UPDATABLE_FIELDS}
        for name in ("applicable_products", "applicable_categories", "excluded_products"):
            changes[name] = _json_list(changes[name])
        coupon.update(**changes)
        repo.add(coupon)

    @handle(ToggleCoupon)
    def toggle_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        coupon.toggle()
        repo.add(coupon)
        return coupon.is_active

    @handle(DeleteCoupon)
    def delete_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        # Placed orders keep the code they were discounted with
        redemptions = current_domain.repository_for(CouponRedemption)
        for redemption in coupon.redemptions:
            redemptions._dao.delete(redemption)
        repo._dao.delete(coupon)
        logger.info("coupon_deleted", code=coupon.code, coupon_id=str(coupon.id), usage_count=coupon.usage_count)


def update_coupon(coupon_id, **changes):
    current_domain.process(UpdateCoupon(coupon_id=coupon_id, **changes), asynchronous=False)


def toggle_coupon(coupon_id) -> bool:
    return current_domain.process(ToggleCoupon(coupon_id=coupon_id), asynchronous=False)


def delete_coupon(coupon_id):
    current_domain.process(DeleteCoupon(coupon_id=coupon_id), asynchronous=False)
