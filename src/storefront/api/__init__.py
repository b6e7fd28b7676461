"""Storefront API package."""

from storefront.api.routes import (
    cart_router,
    catalog_router,
    coupon_router,
    order_router,
    service_request_router,
    shipping_router,
    webhook_router,
    wishlist_router,
)

__all__ = [
    "catalog_router",
    "coupon_router",
    "order_router",
    "shipping_router",
    "webhook_router",
    "cart_router",
    "wishlist_router",
    "service_request_router",
]
