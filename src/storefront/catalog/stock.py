"""Catalog lookups and stock compensation shared by ordering, cancellation and returns."""

from collections.abc import Iterable

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.catalog.product import Product
from storefront.errors import NotFound

logger = structlog.get_logger(__name__)


def get_product(product_id) -> Product:
    try:
        return current_domain.repository_for(Product).get(product_id)
    except ObjectNotFoundError:
        raise NotFound("product", str(product_id)) from None


def restore_items(items: Iterable, reference: str) -> int:
    """Put each item's quantity back into stock. Must run inside a handler.

    Products or variants that no longer exist are skipped with a warning.
    Returns the number of items restored.
    """
    repo = current_domain.repository_for(Product)
    products: dict[str, Product] = {}
    restored = 0

    for item in items:
        product_id = str(item.product_id)
        if product_id not in products:
            try:
                products[product_id] = repo.get(product_id)
            except ObjectNotFoundError:
                products[product_id] = None
        product = products[product_id]

        if product is None or not product.restore_stock(item.quantity, item.color, item.size):
            logger.warning(
                "stock_restore_skipped",
                reference=reference,
                product_id=product_id,
                color=item.color,
                size=item.size,
                quantity=item.quantity,
            )
            continue
        restored += 1

    for product in products.values():
        if product is not None:
            repo.add(product)

    return restored
