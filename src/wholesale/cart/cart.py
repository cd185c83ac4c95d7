"""Cart aggregate: one mutable shopping cart per customer.

Each line snapshots the product's price and order-quantity bounds at the time
it was added. Totals are never set directly: every mutator finishes by
recomputing them from the lines with ``recompute_totals``, inside the same
``atomic_change`` block as the mutation, so the aggregate invariant below is
only checked against a consistent state.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

import structlog
from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, ValueObject
from protean.utils.globals import current_domain

from wholesale.cart.events import (
    CartCleared,
    CartCreated,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
    PromoCodeApplied,
)
from wholesale.cart.promotions import find_promotion
from wholesale.domain import wholesale
from wholesale.errors import (
    AboveMaximumOrder,
    BelowMinimumOrder,
    InsufficientStock,
    ItemNotFound,
    QuantityExceedsMax,
)
from wholesale.pricing import (
    CartTotals,
    OrderPricing,
    line_savings,
    line_subtotal,
    money,
    quote_order,
    recompute_totals,
)

logger = structlog.get_logger(__name__)


class CartReadiness(Enum):
    EMPTY = "empty"
    HAS_OUT_OF_STOCK = "has-out-of-stock"
    READY = "ready"


def cart_ttl() -> timedelta:
    return timedelta(days=int(getattr(current_domain, "CART_TTL_DAYS", 30)))


@wholesale.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    sku = String(required=True, max_length=50)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    original_price = Float(min_value=0.0)  # None when the product is not discounted
    min_order_quantity = Integer(default=1, min_value=1)
    max_order_quantity = Integer(required=True, min_value=1)
    in_stock = Boolean(default=True)
    available_quantity = Integer(min_value=0)  # Display only, refreshed on read
    added_at = DateTime()

    @property
    def line_total(self) -> float:
        return money(self.unit_price * self.quantity)


@wholesale.aggregate
class Cart:
    customer_id = Identifier(required=True, unique=True)
    items = HasMany(CartItem)
    totals = ValueObject(CartTotals)
    promo_code = String(max_length=50)
    created_at = DateTime()
    last_updated = DateTime()
    expires_at = DateTime()

    @invariant.post
    def subtotal_must_match_lines(self):
        if self.totals is None:
            return
        if abs(self.totals.subtotal - line_subtotal(self.items)) > 0.01:
            raise ValidationError({"totals": ["Cart subtotal must equal the sum of its line totals"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        cart = cls(
            customer_id=customer_id,
            totals=CartTotals(),
            created_at=now,
            last_updated=now,
            expires_at=now + cart_ttl(),
        )
        cart.raise_(CartCreated(cart_id=str(cart.id), customer_id=str(customer_id), created_at=now))
        return cart

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def lines(self) -> list[CartItem]:
        """Lines in the order they were added."""
        return sorted(self.items, key=lambda item: item.added_at or self.created_at)

    def line_for(self, product_id) -> CartItem | None:
        return next((item for item in self.items if str(item.product_id) == str(product_id)), None)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def readiness(self) -> CartReadiness:
        if self.is_empty:
            return CartReadiness.EMPTY
        if any(not item.in_stock for item in self.items):
            return CartReadiness.HAS_OUT_OF_STOCK
        return CartReadiness.READY

    def summary(self) -> dict:
        totals = self.totals or CartTotals()
        return {
            "item_count": len(self.items),
            "total_items": sum(item.quantity for item in self.items),
            "subtotal": totals.subtotal,
            "discount": totals.discount,
            "shipping_cost": totals.shipping_cost,
            "total": totals.total,
            "savings": line_savings(self.items),
        }

    def checkout_preview(self, policy=None) -> OrderPricing:
        """What placing an order for this cart would cost right now: shipping and tax included."""
        if self.is_empty:
            return OrderPricing(subtotal=0.0, total=0.0)
        discount = self.totals.discount if self.totals else 0.0
        return quote_order(self.items, discount=discount, policy=policy)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product, quantity):
        """Add ``quantity`` of ``product``, or top up the line that already holds it.

        The product is assumed to have been validated for this quantity. A top-up
        is checked against the line's stored maximum, then against the live
        stock of ``product``, and is all-or-nothing.
        """
        existing = self.line_for(product.id)
        if existing is not None and existing.quantity + quantity > existing.max_order_quantity:
            raise QuantityExceedsMax(
                f"Quantity exceeds maximum order limit. {existing.name} allows at most "
                f"{existing.max_order_quantity}, {existing.quantity} already in cart",
                product_id=str(existing.product_id),
                product_name=existing.name,
                max_order_quantity=existing.max_order_quantity,
                current_quantity=existing.quantity,
                requested=quantity,
            )
        if existing is not None and existing.quantity + quantity > product.stock_quantity:
            raise InsufficientStock(
                f"Insufficient stock for {existing.name}. Available: {product.stock_quantity}, "
                f"{existing.quantity} already in cart",
                product_id=str(existing.product_id),
                product_name=existing.name,
                available=product.stock_quantity,
                current_quantity=existing.quantity,
                requested=quantity,
            )

        now = datetime.now(UTC)
        with atomic_change(self):
            if existing is not None:
                existing.quantity += quantity
                line_quantity = existing.quantity
            else:
                self.add_items(
                    CartItem(
                        product_id=str(product.id),
                        name=product.name,
                        sku=product.sku,
                        quantity=quantity,
                        unit_price=product.price,
                        original_price=product.original_price,
                        min_order_quantity=product.min_order_quantity,
                        max_order_quantity=product.max_order_quantity,
                        in_stock=product.in_stock,
                        available_quantity=product.orderable_quantity,
                        added_at=now,
                    )
                )
                line_quantity = quantity
            self._recompute(now)

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                product_id=str(product.id),
                quantity_added=quantity,
                line_quantity=line_quantity,
                unit_price=product.price,
            )
        )

    def update_item_quantity(self, product_id, quantity):
        item = self.line_for(product_id)
        if item is None:
            raise ItemNotFound(f"Item {product_id} not found in cart", product_id=str(product_id))

        context = {"product_id": str(item.product_id), "product_name": item.name, "requested": quantity}
        if quantity < item.min_order_quantity:
            raise BelowMinimumOrder(
                f"Minimum order quantity is {item.min_order_quantity}",
                min_order_quantity=item.min_order_quantity,
                **context,
            )
        if quantity > item.max_order_quantity:
            raise AboveMaximumOrder(
                f"Maximum order quantity is {item.max_order_quantity}",
                max_order_quantity=item.max_order_quantity,
                **context,
            )

        previous_quantity = item.quantity
        with atomic_change(self):
            item.quantity = quantity
            self._recompute(datetime.now(UTC))

        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                product_id=str(item.product_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id):
        """Drop the line for ``product_id``. Removing an absent product is a no-op."""
        item = self.line_for(product_id)
        if item is None:
            return

        with atomic_change(self):
            self.remove_items(item)
            self._recompute(datetime.now(UTC))

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                product_id=str(product_id),
            )
        )

    def clear(self):
        now = datetime.now(UTC)
        removed = list(self.items)
        with atomic_change(self):
            for item in removed:
                self.remove_items(item)
            self.promo_code = None
            self._recompute(now)

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                items_removed=len(removed),
                cleared_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Promotions
    # -------------------------------------------------------------------
    def apply_promo(self, code):
        promotion = find_promotion(code)
        discount = promotion.discount_for(line_subtotal(self.items))

        with atomic_change(self):
            self.promo_code = promotion.code
            self._recompute(datetime.now(UTC))

        self.raise_(
            PromoCodeApplied(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                promo_code=promotion.code,
                discount=discount,
            )
        )

    # -------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------
    def refresh_availability(self, products):
        """Mark lines against live products (a dict of id to ``Product``).

        Only the display fields change: a line whose product vanished is out
        of stock, others get the product's current stock status and the most
        that could be ordered right now. Prices and stored bounds are kept.
        """
        with atomic_change(self):
            for item in self.items:
                product = products.get(str(item.product_id))
                if product is None:
                    in_stock, available = False, 0
                else:
                    in_stock = product.in_stock
                    available = max(min(item.max_order_quantity, product.stock_quantity), 0)

                if item.in_stock != in_stock:
                    item.in_stock = in_stock
                if item.available_quantity != available:
                    item.available_quantity = available

    # -------------------------------------------------------------------
    # Totals
    # -------------------------------------------------------------------
    def _recompute(self, now):
        """Re-derive totals from the lines. Call inside ``atomic_change``."""
        subtotal = line_subtotal(self.items)
        discount = 0.0
        if self.promo_code:
            promotion = find_promotion(self.promo_code)
            if promotion.is_eligible(subtotal):
                discount = promotion.discount_for(subtotal)
            else:
                logger.info("promo_code_dropped", cart_id=str(self.id), promo_code=self.promo_code, subtotal=subtotal)
                self.promo_code = None

        self.totals = recompute_totals(self.items, discount=discount)
        self.last_updated = now
        self.expires_at = now + cart_ttl()
