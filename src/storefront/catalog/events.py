"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductCreated:
    """A new product was added to the catalog in draft status."""

    __version__ = 1

    product_id: Identifier(required=True)
    sku: String(required=True)
    name: String(required=True)
    price: Float(required=True)
    created_at: DateTime(required=True)


@storefront.event(part_of="Product")
class ProductStatusChanged:
    __version__ = 1

    product_id: Identifier(required=True)
    status: String(required=True)


@storefront.event(part_of="Product")
class VariantAdded:
    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    color: String(required=True)
    size: String(required=True)
    stock: Integer(required=True)


@storefront.event(part_of="Product")
class StockDecremented:
    """Units were taken out of stock by a placed order or exchange."""

    __version__ = 1

    product_id: Identifier(required=True)
    color: String()
    size: String()
    quantity: Integer(required=True)
    remaining: Integer(required=True)


@storefront.event(part_of="Product")
class StockRestored:
    """Units went back into stock (cancellation, return or restock)."""

    __version__ = 1

    product_id: Identifier(required=True)
    color: String()
    size: String()
    quantity: Integer(required=True)
    remaining: Integer(required=True)
