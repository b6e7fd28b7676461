"""Tests for Cart line merging and derived totals."""

import pytest
from protean.exceptions import ValidationError

from storefront.cart.cart import Cart


def _cart_with_items():
    cart = Cart.create("cust-001")
    cart.add_item("prod-1", "Linen Shirt", 1000.0, 2, "Black", "M")
    cart.add_item("prod-2", "Chinos", 1500.0, 1, "Khaki", "32")
    return cart


class TestCartTotals:
    def test_empty_cart(self):
        cart = Cart.create("cust-001")
        assert cart.total_items == 0
        assert cart.total_amount == 0.0

    def test_totals_follow_items(self):
        cart = _cart_with_items()
        assert cart.total_items == 3
        assert cart.total_amount == 3500.0

    def test_same_variant_merges(self):
        cart = _cart_with_items()
        cart.add_item("prod-1", "Linen Shirt", 1000.0, 1, "Black", "M")
        assert len(cart.items) == 2
        assert cart.quantity_of("prod-1", "Black", "M") == 3
        assert cart.total_items == 4

    def test_other_variant_is_separate_line(self):
        cart = _cart_with_items()
        cart.add_item("prod-1", "Linen Shirt", 1000.0, 1, "White", "M")
        assert len(cart.items) == 3


class TestCartMutations:
    def test_update_quantity(self):
        cart = _cart_with_items()
        item = cart.find_item("prod-2", "Khaki", "32")
        cart.update_quantity(item.id, 3)
        assert cart.total_amount == 6500.0

    def test_remove_item(self):
        cart = _cart_with_items()
        item = cart.find_item("prod-1", "Black", "M")
        cart.remove_item(item.id)
        assert cart.total_items == 1
        assert cart.total_amount == 1500.0

    def test_unknown_item_rejected(self):
        with pytest.raises(ValidationError):
            _cart_with_items().remove_item("missing")

    def test_clear(self):
        cart = _cart_with_items()
        cart.clear()
        assert len(cart.items) == 0
        assert cart.total_items == 0
        assert cart.total_amount == 0.0
