"""Shopping cart aggregate, one per customer.

Totals are derived from the items and recomputed inside every mutation.
A cart is emptied, never deleted, once its contents become an order.
"""

from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from storefront.domain import storefront
from storefront.utils.money import round_money


@storefront.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    color = String(max_length=50)
    size = String(max_length=20)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)  # Snapshot at add time
    added_at = DateTime()


@storefront.aggregate
class Cart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    total_items = Integer(default=0)
    total_amount = Float(default=0.0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def totals_must_match_items(self):
        if self.total_items != sum(i.quantity for i in self.items):
            raise ValidationError({"total_items": ["Cart item count is out of date"]})
        if round_money(self.total_amount) != round_money(sum(i.unit_price * i.quantity for i in self.items)):
            raise ValidationError({"total_amount": ["Cart total is out of date"]})

    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, total_items=0, total_amount=0.0, created_at=now, updated_at=now)

    def _recompute(self):
        self.total_items = sum(i.quantity for i in self.items)
        self.total_amount = round_money(sum(i.unit_price * i.quantity for i in self.items))
        self.updated_at = datetime.now(UTC)

    def find_item(self, product_id, color=None, size=None):
        return next(
            (
                i
                for i in self.items
                if str(i.product_id) == str(product_id) and i.color == color and i.size == size
            ),
            None,
        )

    def quantity_of(self, product_id, color=None, size=None) -> int:
        item = self.find_item(product_id, color, size)
        return item.quantity if item else 0

    def add_item(self, product_id, product_name, unit_price, quantity, color=None, size=None):
        """Add an item, merging with an existing line for the same product, color and size."""
        from storefront.cart.events import CartItemAdded

        with atomic_change(self):
            existing = self.find_item(product_id, color, size)
            if existing:
                existing.quantity += quantity
                existing.unit_price = unit_price
                item = existing
            else:
                item = CartItem(
                    product_id=product_id,
                    product_name=product_name,
                    color=color,
                    size=size,
                    quantity=quantity,
                    unit_price=unit_price,
                    added_at=datetime.now(UTC),
                )
                self.add_items(item)
            self._recompute()

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                product_id=str(product_id),
                quantity=quantity,
            )
        )
        return item

    def get_item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})
        return item

    def update_quantity(self, item_id, quantity):
        item = self.get_item(item_id)
        with atomic_change(self):
            item.quantity = quantity
            self._recompute()

    def remove_item(self, item_id):
        item = self.get_item(item_id)
        with atomic_change(self):
            self.remove_items(item)
            self._recompute()

    def clear(self):
        from storefront.cart.events import CartCleared

        if not self.items:
            return
        with atomic_change(self):
            for item in list(self.items):
                self.remove_items(item)
            self._recompute()
        self.raise_(CartCleared(cart_id=str(self.id), customer_id=str(self.customer_id)))
