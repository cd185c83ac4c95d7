"""Application tests for order cancellation and administrative status updates."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from wholesale.cart.items import add_to_cart
from wholesale.catalogue.product import Product
from wholesale.customer.customer import Customer
from wholesale.errors import InvalidTransition, OrderNotFound
from wholesale.order.cancellation import cancel_order
from wholesale.order.order import Order, OrderStatus
from wholesale.order.placement import place_order
from wholesale.order.status import update_order_status


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock_quantity


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _customer(customer_id):
    return current_domain.repository_for(Customer).get(customer_id)


@pytest.fixture()
def placed(customer_id, make_product, shipping_address):
    """A pending order for two units of a product that had 10 in stock."""
    product = make_product(price=500.0, stock_quantity=10)
    add_to_cart(customer_id, product.id, 2)
    order_id = place_order(customer_id, "cod", shipping_address)
    return order_id, product


class TestCustomerCancellation:
    def test_cancel_pending_order_restores_stock_and_statistics(self, customer_id, placed):
        order_id, product = placed
        assert _stock(product.id) == 8
        assert _customer(customer_id).total_orders == 1

        cancel_order(order_id, customer_id, reason="Ordered by mistake")

        order = _order(order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Ordered by mistake"
        assert order.cancelled_by == "customer"
        assert _stock(product.id) == 10
        customer = _customer(customer_id)
        assert customer.total_orders == 0
        assert customer.total_spent == 0.0

    def test_cancel_confirmed_order(self, customer_id, placed):
        order_id, product = placed
        update_order_status(order_id, "confirmed")
        cancel_order(order_id, customer_id)
        assert _order(order_id).status == OrderStatus.CANCELLED.value
        assert _stock(product.id) == 10

    def test_cancel_shipped_order_is_rejected(self, customer_id, placed):
        order_id, product = placed
        update_order_status(order_id, "shipped", tracking_number="BD123", carrier="BlueDart")

        with pytest.raises(InvalidTransition):
            cancel_order(order_id, customer_id)

        assert _order(order_id).status == OrderStatus.SHIPPED.value
        assert _stock(product.id) == 8
        assert _customer(customer_id).total_orders == 1

    def test_second_cancellation_is_rejected_without_double_restore(self, customer_id, placed):
        order_id, product = placed
        cancel_order(order_id, customer_id)

        with pytest.raises(InvalidTransition):
            cancel_order(order_id, customer_id)

        assert _stock(product.id) == 10
        assert _customer(customer_id).total_orders == 0

    def test_another_customers_order_is_not_found(self, placed):
        order_id, product = placed
        with pytest.raises(OrderNotFound):
            cancel_order(order_id, "cust-999")
        assert _stock(product.id) == 8

    def test_deleted_product_is_skipped(self, customer_id, placed):
        order_id, product = placed
        repo = current_domain.repository_for(Product)
        repo._dao.delete(repo.get(product.id))

        cancel_order(order_id, customer_id)

        assert _order(order_id).status == OrderStatus.CANCELLED.value


class TestAdminStatusUpdate:
    def test_forward_through_lifecycle(self, placed):
        order_id, _ = placed
        for status in ("confirmed", "processing", "shipped", "delivered"):
            update_order_status(order_id, status)

        order = _order(order_id)
        assert order.status == OrderStatus.DELIVERED.value
        assert order.actual_delivery is not None

    def test_status_update_has_no_stock_effect(self, placed):
        order_id, product = placed
        update_order_status(order_id, "shipped")
        update_order_status(order_id, "delivered")
        assert _stock(product.id) == 8

    def test_tracking_and_notes(self, placed):
        order_id, _ = placed
        update_order_status(
            order_id,
            "shipped",
            tracking_number="BD123456789IN",
            carrier="BlueDart",
            admin_notes="Dispatched from Hosur warehouse",
        )
        order = _order(order_id)
        assert order.tracking_number == "BD123456789IN"
        assert order.carrier == "BlueDart"
        assert order.admin_notes.endswith("Dispatched from Hosur warehouse")

    def test_backward_move_is_rejected(self, placed):
        order_id, _ = placed
        update_order_status(order_id, "shipped")
        with pytest.raises(InvalidTransition):
            update_order_status(order_id, "confirmed")

    def test_unknown_status(self, placed):
        order_id, _ = placed
        with pytest.raises(ValidationError) as exc:
            update_order_status(order_id, "lost")
        assert "status" in exc.value.messages

    def test_unknown_order(self):
        with pytest.raises(OrderNotFound):
            update_order_status("ord-404", "confirmed")

    def test_admin_cancellation_restores_stock(self, customer_id, placed):
        order_id, product = placed
        update_order_status(order_id, "cancelled", admin_notes="Customer called to cancel")

        order = _order(order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancelled_by == "admin"
        assert order.cancellation_reason == "Customer called to cancel"
        assert _stock(product.id) == 10
        assert _customer(customer_id).total_orders == 0

    def test_admin_cannot_cancel_processing_order(self, placed):
        order_id, product = placed
        update_order_status(order_id, "processing")
        with pytest.raises(InvalidTransition):
            update_order_status(order_id, "cancelled")
        assert _stock(product.id) == 8
