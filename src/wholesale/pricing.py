"""Pricing rules shared by the cart, the checkout preview and order placement.

Everything monetary is derived here and nowhere else:

- ``recompute_totals`` is the pure cart totals function every cart mutator
  calls before it returns.
- ``quote_order`` prices a checkout: shipping is free at or above the
  threshold and a flat fee below it, tax is a flat rate on the subtotal.

The thresholds come from the ``[custom]`` section of ``domain.toml`` and can
be overridden through ``WHOLESALE_*`` environment variables.
"""

from collections.abc import Iterable
from typing import Any

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Float
from protean.utils.globals import current_domain

from wholesale.domain import wholesale

_TOLERANCE = 0.01


def money(amount: float) -> float:
    """Round an amount to two decimal places."""
    return round(float(amount) + 0.0, 2)


def line_subtotal(lines: Iterable[Any]) -> float:
    return money(sum(line.unit_price * line.quantity for line in lines))


def line_savings(lines: Iterable[Any]) -> float:
    """Sum of (original price - unit price) x quantity over discounted lines."""
    return money(
        sum(
            (line.original_price - line.unit_price) * line.quantity
            for line in lines
            if line.original_price is not None and line.original_price > line.unit_price
        )
    )


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@wholesale.value_object(part_of="Cart")
class CartTotals:
    """Derived money figures of a cart, never set independently of its lines."""

    subtotal = Float(default=0.0, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    shipping_cost = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)

    @invariant.post
    def total_must_balance(self):
        expected = self.subtotal - self.discount + self.shipping_cost
        if abs(self.total - expected) > _TOLERANCE:
            raise ValidationError({"total": ["Cart total must equal subtotal - discount + shipping cost"]})


@wholesale.value_object(part_of="Order")
class OrderPricing:
    """Financial summary of an order, locked at placement time."""

    subtotal = Float(required=True, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    shipping_cost = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    total = Float(required=True, min_value=0.0)

    @invariant.post
    def total_must_balance(self):
        expected = self.subtotal - self.discount + self.shipping_cost + self.tax
        if abs(self.total - expected) > _TOLERANCE:
            raise ValidationError({"total": ["Order total must equal subtotal - discount + shipping cost + tax"]})


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------
class PricingPolicy:
    def __init__(self, free_shipping_threshold=10000.0, flat_shipping_fee=500.0, tax_rate=0.18):
        self.free_shipping_threshold = float(free_shipping_threshold)
        self.flat_shipping_fee = float(flat_shipping_fee)
        self.tax_rate = float(tax_rate)

    @classmethod
    def from_config(cls) -> "PricingPolicy":
        """Build the policy from the active domain's custom configuration."""
        return cls(
            free_shipping_threshold=getattr(current_domain, "FREE_SHIPPING_THRESHOLD", 10000.0),
            flat_shipping_fee=getattr(current_domain, "FLAT_SHIPPING_FEE", 500.0),
            tax_rate=getattr(current_domain, "TAX_RATE", 0.18),
        )

    def shipping_for(self, subtotal: float) -> float:
        if subtotal >= self.free_shipping_threshold:
            return 0.0
        return money(self.flat_shipping_fee)

    def tax_for(self, subtotal: float) -> float:
        return money(subtotal * self.tax_rate)

    def __repr__(self):
        return (
            f"PricingPolicy(free_shipping_threshold={self.free_shipping_threshold}, "
            f"flat_shipping_fee={self.flat_shipping_fee}, tax_rate={self.tax_rate})"
        )


# ---------------------------------------------------------------------------
# Pure functions
# ---------------------------------------------------------------------------
def recompute_totals(lines: Iterable[Any], discount: float = 0.0, shipping_cost: float = 0.0) -> CartTotals:
    """Derive cart totals from its lines.

    The discount is clamped to the subtotal so the total never drops below
    the shipping cost.
    """
    subtotal = line_subtotal(lines)
    discount = money(min(max(discount, 0.0), subtotal))
    shipping_cost = money(shipping_cost)
    return CartTotals(
        subtotal=subtotal,
        discount=discount,
        shipping_cost=shipping_cost,
        total=money(subtotal - discount + shipping_cost),
    )


def quote_order(lines: Iterable[Any], discount: float = 0.0, policy: PricingPolicy | None = None) -> OrderPricing:
    """Price a checkout of ``lines`` under ``policy`` (the configured one by default)."""
    policy = policy or PricingPolicy.from_config()
    subtotal = line_subtotal(lines)
    discount = money(min(max(discount, 0.0), subtotal))
    shipping_cost = policy.shipping_for(subtotal)
    tax = policy.tax_for(subtotal)
    return OrderPricing(
        subtotal=subtotal,
        discount=discount,
        shipping_cost=shipping_cost,
        tax=tax,
        total=money(subtotal - discount + shipping_cost + tax),
    )
