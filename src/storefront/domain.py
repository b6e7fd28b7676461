"""Storefront bounded context: catalog, coupons, orders, fulfillment and returns.

Orders are assembled from the catalog with server-side prices, discounted by
coupon rules and reconciled against shipment and checkout provider webhooks.
Carts and wishlists feed the checkout flow.
"""

import structlog
from protean.domain import Domain

storefront = Domain(name="storefront")

logger = structlog.get_logger(__name__)
