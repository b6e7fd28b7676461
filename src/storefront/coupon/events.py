"""Domain events for the Coupon aggregate."""

from protean.fields import Boolean, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Coupon")
class CouponCreated:
    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    discount_type = String(required=True)
    discount_value = Float(required=True)


@storefront.event(part_of="Coupon")
class CouponUpdated:
    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)


@storefront.event(part_of="Coupon")
class CouponToggled:
    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    is_active = Boolean(required=True)


@storefront.event(part_of="Coupon")
class CouponRedeemed:
    """One use of the coupon was consumed by a committed order."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    customer_id = Identifier(required=True)
    order_id = Identifier(required=True)
    usage_count = Integer(required=True)
