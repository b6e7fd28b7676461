"""Product aggregate root with per-(color, size) Variant stock."""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Integer, String, Text

from storefront.domain import storefront
from storefront.errors import InsufficientStock, NotFound, ProductInactive


class ProductStatus(Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    INACTIVE = "inactive"


@storefront.entity(part_of="Product")
class Variant:
    """One purchasable color/size combination and its stock count."""

    color: String(required=True, max_length=50)
    size: String(required=True, max_length=20)
    stock: Integer(default=0, min_value=0)


@storefront.aggregate
class Product:
    """Product aggregate root.

    ``price`` is authoritative: orders always re-read it from here. When a
    product has variants their stock counts are authoritative and the flat
    ``stock`` field is ignored for ordering.
    """

    name: String(required=True, max_length=255)
    sku: String(required=True, max_length=50)
    category: String(max_length=100)
    description: Text()
    price: Float(required=True, min_value=0.01)
    status: String(choices=ProductStatus, default=ProductStatus.DRAFT.value)
    stock: Integer(default=0, min_value=0)
    variants: HasMany(Variant)
    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def variant_keys_must_be_unique(self):
        keys = [(v.color, v.size) for v in self.variants]
        if len(keys) != len(set(keys)):
            raise ValidationError({"variants": ["Each color and size combination may appear only once"]})

    @invariant.post
    def stock_can_never_be_negative(self):
        if self.stock is not None and self.stock < 0:
            raise ValidationError({"stock": ["Stock cannot be negative"]})
        if any(v.stock < 0 for v in self.variants):
            raise ValidationError({"variants": ["Variant stock cannot be negative"]})

    @classmethod
    def create(cls, name, sku, price, category=None, description=None, stock=0):
        from storefront.catalog.events import ProductCreated

        now = datetime.now(UTC)
        product = cls(
            name=name,
            sku=sku,
            price=price,
            category=category,
            description=description,
            stock=stock,
            status=ProductStatus.DRAFT.value,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductCreated(
                product_id=product.id,
                sku=sku,
                name=name,
                price=price,
                created_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE.value

    def activate(self):
        from storefront.catalog.events import ProductStatusChanged

        if self.is_active:
            return
        self.status = ProductStatus.ACTIVE.value
        self.updated_at = datetime.now(UTC)
        self.raise_(ProductStatusChanged(product_id=self.id, status=self.status))

    def deactivate(self):
        from storefront.catalog.events import ProductStatusChanged

        if self.status == ProductStatus.INACTIVE.value:
            return
        self.status = ProductStatus.INACTIVE.value
        self.updated_at = datetime.now(UTC)
        self.raise_(ProductStatusChanged(product_id=self.id, status=self.status))

    def ensure_orderable(self):
        if not self.is_active:
            raise ProductInactive(self.name)

    # -------------------------------------------------------------------
    # Variants
    # -------------------------------------------------------------------
    @property
    def has_variants(self) -> bool:
        return bool(self.variants)

    def variant_for(self, color, size):
        return next((v for v in self.variants if v.color == color and v.size == size), None)

    def add_variant(self, color, size, stock=0):
        from storefront.catalog.events import VariantAdded

        if self.variant_for(color, size) is not None:
            raise ValidationError({"variants": [f"Variant {color}/{size} already exists"]})

        variant = Variant(color=color, size=size, stock=stock)
        self.add_variants(variant)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            VariantAdded(
                product_id=self.id,
                variant_id=variant.id,
                color=color,
                size=size,
                stock=stock,
            )
        )
        return variant

    def total_stock(self, color=None) -> int:
        if not self.has_variants:
            return self.stock or 0
        return sum(v.stock for v in self.variants if color is None or v.color == color)

    # -------------------------------------------------------------------
    # Stock
    # -------------------------------------------------------------------
    def available_stock(self, color=None, size=None) -> int:
        """Stock available for a variant, or the flat stock when there are none.

        Raises ``NotFound`` when the product has variants but not this one.
        """
        if not self.has_variants:
            return self.stock or 0
        variant = self.variant_for(color, size)
        if variant is None:
            raise NotFound("variant", f"{self.name} {color}/{size}")
        return variant.stock

    def decrement_stock(self, quantity, color=None, size=None):
        from storefront.catalog.events import StockDecremented

        available = self.available_stock(color, size)
        if available < quantity:
            raise InsufficientStock(self.name, available)

        if self.has_variants:
            variant = self.variant_for(color, size)
            variant.stock = available - quantity
        else:
            self.stock = available - quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockDecremented(
                product_id=self.id,
                color=color,
                size=size,
                quantity=quantity,
                remaining=available - quantity,
            )
        )

    def restore_stock(self, quantity, color=None, size=None) -> bool:
        """Put ``quantity`` units back. Returns False when the variant is gone."""
        from storefront.catalog.events import StockRestored

        if self.has_variants:
            variant = self.variant_for(color, size)
            if variant is None:
                return False
            variant.stock += quantity
            remaining = variant.stock
        else:
            self.stock = (self.stock or 0) + quantity
            remaining = self.stock
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockRestored(
                product_id=self.id,
                color=color,
                size=size,
                quantity=quantity,
                remaining=remaining,
            )
        )
        return True
