"""Application tests for wishlist commands and moving items into the cart."""

import pytest
from protean.exceptions import ValidationError

from storefront.cart.view import view_cart
from storefront.errors import InsufficientStock, NotFound
from storefront.wishlist.management import (
    AddToWishlist,
    ClearWishlist,
    MoveToCart,
    RemoveFromWishlist,
    process_wishlist_command,
    view_wishlist,
)


@pytest.fixture()
def shirt(make_product):
    return make_product(variants=[("Black", "M", 1)])


def _wish(product, customer_id="cust-001"):
    process_wishlist_command(AddToWishlist(customer_id=customer_id, product_id=str(product.id)))


class TestWishlist:
    def test_add_and_remove(self, shirt):
        _wish(shirt)
        assert view_wishlist("cust-001").contains(shirt.id)

        process_wishlist_command(RemoveFromWishlist(customer_id="cust-001", product_id=str(shirt.id)))
        assert not view_wishlist("cust-001").contains(shirt.id)

    def test_duplicate_rejected(self, shirt):
        _wish(shirt)
        with pytest.raises(ValidationError):
            _wish(shirt)

    def test_unknown_product_rejected(self):
        with pytest.raises(NotFound):
            process_wishlist_command(AddToWishlist(customer_id="cust-001", product_id="missing"))

    def test_clear(self, shirt, make_product):
        _wish(shirt)
        _wish(make_product(name="Chinos"))
        process_wishlist_command(ClearWishlist(customer_id="cust-001"))
        assert len(view_wishlist("cust-001").items) == 0


class TestMoveToCart:
    def test_move_to_cart(self, shirt):
        _wish(shirt)
        process_wishlist_command(
            MoveToCart(customer_id="cust-001", product_id=str(shirt.id), color="Black", size="M")
        )
        assert not view_wishlist("cust-001").contains(shirt.id)
        assert view_cart("cust-001").total_items == 1

    def test_move_without_stock_keeps_wishlist(self, shirt):
        _wish(shirt)
        with pytest.raises(InsufficientStock):
            process_wishlist_command(
                MoveToCart(customer_id="cust-001", product_id=str(shirt.id), quantity=2, color="Black", size="M")
            )
        assert view_wishlist("cust-001").contains(shirt.id)
