"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from wholesale.domain import wholesale


@wholesale.event(part_of="Cart")
class CartCreated:
    """A customer's cart was opened on first access."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    created_at = DateTime(required=True)


@wholesale.event(part_of="Cart")
class CartItemAdded:
    """A product was added to the cart, or an existing line was topped up."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity_added = Integer(required=True)
    line_quantity = Integer(required=True)
    unit_price = Float(required=True)


@wholesale.event(part_of="Cart")
class CartItemQuantityUpdated:
    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@wholesale.event(part_of="Cart")
class CartItemRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)


@wholesale.event(part_of="Cart")
class CartCleared:
    """Every line was removed, by the customer or by a placed order."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    items_removed = Integer(required=True)
    cleared_at = DateTime(required=True)


@wholesale.event(part_of="Cart")
class PromoCodeApplied:
    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    promo_code = String(required=True)
    discount = Float(required=True)
