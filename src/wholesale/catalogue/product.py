"""Product aggregate: the catalogue record the cart and orders are validated against.

Stock lives directly on the product. It only ever moves through
``adjust_stock``, which refuses any change that would take it below zero.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text

from wholesale.catalogue.events import ProductActivated, ProductAdded, ProductDeactivated, StockAdjusted
from wholesale.domain import wholesale
from wholesale.errors import AboveMaximumOrder, BelowMinimumOrder, InsufficientStock, ProductInactive


@wholesale.aggregate
class Product:
    name: String(required=True, max_length=200)
    sku: String(required=True, max_length=50, unique=True)
    description: Text()
    category: String(max_length=100)
    brand: String(max_length=100)
    unit: String(max_length=20, default="piece")
    price: Float(required=True, min_value=0.0)
    original_price: Float(min_value=0.0)
    stock_quantity: Integer(default=0, min_value=0)
    min_order_quantity: Integer(default=1, min_value=1)
    max_order_quantity: Integer(default=100, min_value=1)
    is_active: Boolean(default=True)
    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def order_quantity_bounds_must_be_ordered(self):
        if self.max_order_quantity < self.min_order_quantity:
            raise ValidationError(
                {"max_order_quantity": ["Maximum order quantity cannot be less than minimum order quantity"]}
            )

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, name, sku, price, stock_quantity=0, **attributes):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            sku=sku,
            price=price,
            stock_quantity=stock_quantity,
            created_at=now,
            updated_at=now,
            **attributes,
        )
        product.raise_(
            ProductAdded(
                product_id=str(product.id),
                sku=product.sku,
                name=product.name,
                price=product.price,
                stock_quantity=product.stock_quantity,
                added_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------
    @property
    def in_stock(self) -> bool:
        return bool(self.is_active) and self.stock_quantity > 0

    @property
    def orderable_quantity(self) -> int:
        """The most that can be ordered right now: max order quantity capped by stock."""
        return min(self.max_order_quantity, self.stock_quantity)

    def ensure_orderable(self, quantity):
        """Check that ``quantity`` units can be ordered right now.

        Rules are checked in a fixed order (active, stock, minimum, maximum)
        and the first violation is raised.
        """
        context = {"product_id": str(self.id), "product_name": self.name}

        if not self.is_active:
            raise ProductInactive(f"{self.name} is no longer available", **context)

        if self.stock_quantity < quantity:
            raise InsufficientStock(
                f"Insufficient stock for {self.name}. Available: {self.stock_quantity}",
                available=self.stock_quantity,
                requested=quantity,
                **context,
            )

        if quantity < self.min_order_quantity:
            raise BelowMinimumOrder(
                f"Minimum order quantity for {self.name} is {self.min_order_quantity}",
                min_order_quantity=self.min_order_quantity,
                requested=quantity,
                **context,
            )

        if quantity > self.max_order_quantity:
            raise AboveMaximumOrder(
                f"Maximum order quantity for {self.name} is {self.max_order_quantity}",
                max_order_quantity=self.max_order_quantity,
                requested=quantity,
                **context,
            )

    # -------------------------------------------------------------------
    # Stock
    # -------------------------------------------------------------------
    def adjust_stock(self, quantity_change, reason=None):
        """Move stock by ``quantity_change`` (negative to decrement)."""
        previous = self.stock_quantity
        new_quantity = previous + quantity_change
        if new_quantity < 0:
            raise InsufficientStock(
                f"Insufficient stock for {self.name}. Available: {previous}",
                product_id=str(self.id),
                product_name=self.name,
                available=previous,
                requested=-quantity_change,
            )

        now = datetime.now(UTC)
        self.stock_quantity = new_quantity
        self.updated_at = now

        self.raise_(
            StockAdjusted(
                product_id=str(self.id),
                sku=self.sku,
                quantity_change=quantity_change,
                previous_quantity=previous,
                new_quantity=new_quantity,
                reason=reason,
                adjusted_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def deactivate(self):
        if not self.is_active:
            return

        now = datetime.now(UTC)
        self.is_active = False
        self.updated_at = now
        self.raise_(ProductDeactivated(product_id=str(self.id), sku=self.sku, deactivated_at=now))

    def activate(self):
        if self.is_active:
            return

        now = datetime.now(UTC)
        self.is_active = True
        self.updated_at = now
        self.raise_(ProductActivated(product_id=str(self.id), sku=self.sku, activated_at=now))
