"""Catalog read/write interface and the stock adjustment primitive.

``find_product`` and ``adjust_stock`` are what the cart and order code use to
reach the catalogue. ``StockBatch`` applies a series of adjustments inside
the current Unit of Work, re-reading each product at the moment it is
changed, and remembers what it applied so that exactly those adjustments
can be reverted when a later step fails.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from wholesale.catalogue.product import Product
from wholesale.concurrency import STOCK_KEY, process_serialized
from wholesale.domain import wholesale
from wholesale.errors import ProductNotFound

logger = structlog.get_logger(__name__)


def find_product(product_id) -> Product:
    try:
        return current_domain.repository_for(Product).get(product_id)
    except ObjectNotFoundError:
        raise ProductNotFound(f"Product {product_id} not found", product_id=str(product_id)) from None


def adjust_stock(product_id, quantity_change, reason=None) -> Product:
    """Re-read the product and move its stock by ``quantity_change``."""
    product = find_product(product_id)
    product.adjust_stock(quantity_change, reason=reason)
    current_domain.repository_for(Product).add(product)
    return product


class StockBatch:
    """An all-or-nothing run of stock adjustments.

    Usage::

        batch = StockBatch(reason=f"order {order_number}")
        try:
            for line in lines:
                batch.apply(line.product_id, -line.quantity)
        except InsufficientStock:
            batch.revert()
            raise
    """

    def __init__(self, reason=None):
        self.reason = reason
        self.applied: list[tuple[str, int]] = []

    def apply(self, product_id, quantity_change) -> Product:
        product = adjust_stock(product_id, quantity_change, reason=self.reason)
        self.applied.append((str(product_id), quantity_change))
        return product

    def revert(self) -> int:
        """Undo every applied adjustment, newest first. Returns how many were undone."""
        reverted = 0
        while self.applied:
            product_id, quantity_change = self.applied.pop()
            adjust_stock(product_id, -quantity_change, reason=f"revert: {self.reason}" if self.reason else "revert")
            reverted += 1

        if reverted:
            logger.info("stock_batch_reverted", reason=self.reason, adjustments=reverted)
        return reverted


@wholesale.command(part_of="Product")
class AdjustStock:
    """Manual stock correction by an operator (receiving, shrinkage, recount)."""

    product_id = Identifier(required=True)
    quantity_change = Integer(required=True)  # Can be negative
    reason = String(required=True, max_length=200)


@wholesale.command_handler(part_of=Product)
class StockAdjustmentHandler:
    @handle(AdjustStock)
    def adjust_stock(self, command):
        product = adjust_stock(command.product_id, command.quantity_change, reason=command.reason)
        return product.stock_quantity


def adjust_stock_level(product_id, quantity_change, reason) -> int:
    """Dispatch an operator stock correction while holding the stock lock.

    Returns the product's stock after the adjustment.
    """
    return process_serialized(
        AdjustStock(product_id=product_id, quantity_change=quantity_change, reason=reason),
        STOCK_KEY,
    )
