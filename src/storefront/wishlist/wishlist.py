"""Wishlist aggregate: products a customer is keeping an eye on."""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier

from storefront.domain import storefront


@storefront.entity(part_of="Wishlist")
class WishlistItem:
    product_id = Identifier(required=True)
    added_at = DateTime()


@storefront.aggregate
class Wishlist:
    customer_id = Identifier(required=True)
    items = HasMany(WishlistItem)
    updated_at = DateTime()

    @classmethod
    def create(cls, customer_id):
        return cls(customer_id=customer_id, updated_at=datetime.now(UTC))

    def contains(self, product_id) -> bool:
        return any(str(i.product_id) == str(product_id) for i in self.items)

    def add(self, product_id):
        if self.contains(product_id):
            raise ValidationError({"product_id": ["Product already in wishlist"]})
        now = datetime.now(UTC)
        self.add_items(WishlistItem(product_id=product_id, added_at=now))
        self.updated_at = now

    def remove(self, product_id):
        item = next((i for i in self.items if str(i.product_id) == str(product_id)), None)
        if item is None:
            raise ValidationError({"product_id": ["Product not in wishlist"]})
        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

    def clear(self):
        for item in list(self.items):
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)
