"""Shared BDD fixtures and step definitions for coupon scenarios."""

import pytest
from pytest_bdd import given, parsers, then

from storefront.coupon.coupon import find_coupon


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse(
        'a percentage coupon "{code}" for {percent:d} percent with minimum {minimum:d} and cap {cap:d}'
    ),
    target_fixture="coupon",
)
def percentage_coupon(make_coupon, code, percent, minimum, cap):
    return make_coupon(code=code, discount_value=percent, minimum_purchase=minimum, maximum_discount=cap)


@given(
    parsers.cfparse("an active product priced at {price:d} with {stock:d} units in stock"),
    target_fixture="product",
)
def active_product(make_product, price, stock):
    return make_product(price=float(price), variants=[("Black", "M", stock)])


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the coupon has been used {count:d} time"))
def coupon_used(coupon, count):
    assert find_coupon(coupon.code).usage_count == count
