"""Tests for the Product aggregate: orderability rules and stock adjustment."""

import pytest
from protean.exceptions import ValidationError
from wholesale.catalogue.events import ProductAdded, ProductDeactivated, StockAdjusted
from wholesale.catalogue.product import Product
from wholesale.errors import AboveMaximumOrder, BelowMinimumOrder, InsufficientStock, ProductInactive


def _make_product(**overrides):
    attributes = {
        "name": "Basmati Rice 25kg",
        "sku": "RICE-25",
        "price": 2150.0,
        "stock_quantity": 40,
        "min_order_quantity": 5,
        "max_order_quantity": 30,
    }
    attributes.update(overrides)
    return Product.create(**attributes)


class TestProductCreation:
    def test_create_raises_product_added(self):
        product = _make_product()
        assert isinstance(product._events[-1], ProductAdded)
        assert product._events[-1].sku == "RICE-25"

    def test_max_below_min_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            _make_product(min_order_quantity=10, max_order_quantity=5)
        assert "max_order_quantity" in exc.value.messages

    def test_negative_stock_is_rejected(self):
        with pytest.raises(ValidationError):
            _make_product(stock_quantity=-1)


class TestOrderability:
    def test_quantity_within_bounds_is_orderable(self):
        _make_product().ensure_orderable(10)

    def test_inactive_product_is_rejected_first(self):
        product = _make_product(stock_quantity=0)
        product.deactivate()
        with pytest.raises(ProductInactive):
            product.ensure_orderable(1)

    def test_stock_is_checked_before_minimum(self):
        product = _make_product(stock_quantity=2)
        with pytest.raises(InsufficientStock) as exc:
            product.ensure_orderable(3)
        assert exc.value.context["available"] == 2
        assert exc.value.context["product_name"] == "Basmati Rice 25kg"

    def test_below_minimum(self):
        with pytest.raises(BelowMinimumOrder) as exc:
            _make_product().ensure_orderable(4)
        assert exc.value.context["min_order_quantity"] == 5

    def test_above_maximum(self):
        with pytest.raises(AboveMaximumOrder) as exc:
            _make_product().ensure_orderable(31)
        assert exc.value.context["max_order_quantity"] == 30

    def test_exactly_maximum_is_orderable(self):
        _make_product().ensure_orderable(30)

    def test_exactly_stock_is_orderable(self):
        _make_product(stock_quantity=7).ensure_orderable(7)

    def test_orderable_quantity_is_capped_by_stock(self):
        assert _make_product(stock_quantity=12).orderable_quantity == 12
        assert _make_product(stock_quantity=400).orderable_quantity == 30

    def test_in_stock_needs_active_and_stock(self):
        assert _make_product().in_stock
        assert not _make_product(stock_quantity=0).in_stock


class TestStockAdjustment:
    def test_decrement(self):
        product = _make_product()
        product.adjust_stock(-15, reason="Order ORD-2026-001")
        assert product.stock_quantity == 25

        event = product._events[-1]
        assert isinstance(event, StockAdjusted)
        assert event.previous_quantity == 40
        assert event.new_quantity == 25
        assert event.quantity_change == -15

    def test_decrement_to_zero_is_allowed(self):
        product = _make_product()
        product.adjust_stock(-40)
        assert product.stock_quantity == 0

    def test_decrement_below_zero_is_rejected_and_stock_unchanged(self):
        product = _make_product()
        with pytest.raises(InsufficientStock):
            product.adjust_stock(-41)
        assert product.stock_quantity == 40

    def test_restock(self):
        product = _make_product(stock_quantity=0)
        product.adjust_stock(100, reason="Received shipment")
        assert product.stock_quantity == 100


class TestLifecycle:
    def test_deactivate_raises_event_once(self):
        product = _make_product()
        product._events.clear()
        product.deactivate()
        product.deactivate()
        assert not product.is_active
        assert len([e for e in product._events if isinstance(e, ProductDeactivated)]) == 1

    def test_activate(self):
        product = _make_product(is_active=False)
        product.activate()
        assert product.is_active
