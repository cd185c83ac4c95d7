"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from wholesale.domain import wholesale


@wholesale.event(part_of="Product")
class ProductAdded:
    """A product was added to the wholesale catalogue."""

    __version__ = 1

    product_id = Identifier(required=True)
    sku = String(required=True)
    name = String(required=True)
    price = Float(required=True)
    stock_quantity = Integer(required=True)
    added_at = DateTime(required=True)


@wholesale.event(part_of="Product")
class StockAdjusted:
    """Stock on hand changed: an order decrement, a cancellation restore, or a manual correction."""

    __version__ = 1

    product_id = Identifier(required=True)
    sku = String(required=True)
    quantity_change = Integer(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    reason = String(max_length=200)
    adjusted_at = DateTime(required=True)


@wholesale.event(part_of="Product")
class ProductDeactivated:
    __version__ = 1

    product_id = Identifier(required=True)
    sku = String(required=True)
    deactivated_at = DateTime(required=True)


@wholesale.event(part_of="Product")
class ProductActivated:
    __version__ = 1

    product_id = Identifier(required=True)
    sku = String(required=True)
    activated_at = DateTime(required=True)
