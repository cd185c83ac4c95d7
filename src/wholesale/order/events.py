"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from wholesale.domain import wholesale


@wholesale.event(part_of="Order")
class OrderPlaced:
    """A cart was converted into an order and its stock was taken."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: [{product_id, sku, quantity, unit_price}]
    item_count = Integer(required=True)
    subtotal = Float(required=True)
    discount = Float(required=True)
    shipping_cost = Float(required=True)
    tax = Float(required=True)
    total = Float(required=True)
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@wholesale.event(part_of="Order")
class OrderCancelled:
    """An order was cancelled and its stock handed back to the catalogue."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String(max_length=500)
    cancelled_by = String(required=True)
    total = Float(required=True)
    cancelled_at = DateTime(required=True)


@wholesale.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    tracking_number = String()
    carrier = String()
    changed_at = DateTime(required=True)
