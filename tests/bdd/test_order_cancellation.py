"""BDD tests for order cancellation."""

from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when
from wholesale.order.cancellation import cancel_order
from wholesale.order.order import Order
from wholesale.order.status import update_order_status

scenarios("features/order_cancellation.feature")


@given(parsers.parse('the order has been marked "{status}"'))
def _(order_id, status):
    update_order_status(order_id, status)


@when("the customer cancels the order")
def _(attempt, order_id, customer_id):
    attempt(cancel_order, order_id, customer_id, reason="No longer needed")


@then(parsers.parse('the order is "{status}"'))
def _(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).status == status
