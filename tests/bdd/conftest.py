"""Shared BDD fixtures and step definitions for checkout and cancellation."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then
from wholesale.cart.items import add_to_cart
from wholesale.cart.management import open_cart
from wholesale.catalogue.product import Product
from wholesale.customer.customer import Customer
from wholesale.errors import WholesaleError
from wholesale.order.order import Order
from wholesale.order.placement import place_order


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def products():
    """SKU to product id, for the products a scenario has set up."""
    return {}


@pytest.fixture()
def error():
    """Container for the domain error a When step ran into."""
    return {"exc": None}


@pytest.fixture()
def attempt(error):
    """Run a When step action, recording the domain error it raises instead of failing."""

    def _attempt(action, *args, **kwargs):
        try:
            return action(*args, **kwargs)
        except WholesaleError as exc:
            error["exc"] = exc
            return None

    return _attempt


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.parse(
        'a product "{sku}" priced {price:f} with {stock:d} in stock, ordered in lots of {minimum:d} to {maximum:d}'
    )
)
def _(products, make_product, sku, price, stock, minimum, maximum):
    product = make_product(
        sku=sku,
        price=price,
        stock_quantity=stock,
        min_order_quantity=minimum,
        max_order_quantity=maximum,
    )
    products[sku] = product.id


@given(parsers.parse('the customer has {quantity:d} of "{sku}" in the cart'))
def _(products, customer_id, quantity, sku):
    add_to_cart(customer_id, products[sku], quantity)


@given(parsers.parse('the customer has placed an order for {quantity:d} of "{sku}"'), target_fixture="order_id")
def _(products, customer_id, shipping_address, quantity, sku):
    add_to_cart(customer_id, products[sku], quantity)
    return place_order(customer_id, "cod", shipping_address)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.parse('the request is rejected with "{reason}"'))
def _(error, reason):
    assert error["exc"] is not None, "expected the request to be rejected"
    assert error["exc"].reason == reason


@then(parsers.parse('"{sku}" has {stock:d} in stock'))
def _(products, sku, stock):
    assert current_domain.repository_for(Product).get(products[sku]).stock_quantity == stock


@then(parsers.parse('the cart holds {quantity:d} of "{sku}"'))
def _(products, customer_id, quantity, sku):
    assert open_cart(customer_id).line_for(products[sku]).quantity == quantity


@then("the cart is empty")
def _(customer_id):
    assert open_cart(customer_id).is_empty


@then("no order exists")
def _():
    assert current_domain.repository_for(Order)._dao.query.all().total == 0


@then(parsers.parse("the customer has {count:d} orders on record"))
def _(customer_id, count):
    assert current_domain.repository_for(Customer).get(customer_id).total_orders == count
