"""Cart item management: commands, handler and the serialized entry points.

Every item change is validated against the live product before the cart is
touched, and is dispatched while holding the customer's cart lock so that two
requests for the same customer never interleave their read-modify-write.
"""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from wholesale.cart.cart import Cart
from wholesale.cart.repository import load_cart
from wholesale.catalogue.stock import find_product
from wholesale.concurrency import cart_key, process_serialized
from wholesale.domain import wholesale
from wholesale.errors import AboveMaximumOrder, BelowMinimumOrder, ItemNotFound


@wholesale.command(part_of="Cart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(default=1)


@wholesale.command(part_of="Cart")
class UpdateCartItemQuantity:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@wholesale.command(part_of="Cart")
class RemoveFromCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)


@wholesale.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = find_product(command.product_id)
        product.ensure_orderable(command.quantity)

        cart = load_cart(command.customer_id)
        cart.add_item(product, command.quantity)
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)

    @handle(UpdateCartItemQuantity)
    def update_cart_item_quantity(self, command):
        cart = load_cart(command.customer_id)
        if cart.line_for(command.product_id) is None:
            raise ItemNotFound(f"Item {command.product_id} not found in cart", product_id=str(command.product_id))

        # The live product can be stricter than the bounds captured on the line
        product = find_product(command.product_id)
        context = {"product_id": str(product.id), "product_name": product.name, "requested": command.quantity}
        if command.quantity < product.min_order_quantity:
            raise BelowMinimumOrder(
                f"Minimum order quantity is {product.min_order_quantity}",
                min_order_quantity=product.min_order_quantity,
                **context,
            )
        if command.quantity > product.orderable_quantity:
            raise AboveMaximumOrder(
                f"Maximum order quantity is {product.orderable_quantity}",
                max_order_quantity=product.orderable_quantity,
                available=product.stock_quantity,
                **context,
            )

        cart.update_item_quantity(command.product_id, command.quantity)
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = load_cart(command.customer_id)
        cart.remove_item(command.product_id)
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)


def add_to_cart(customer_id, product_id, quantity=1):
    return process_serialized(
        AddToCart(customer_id=customer_id, product_id=product_id, quantity=quantity),
        cart_key(customer_id),
    )


def update_cart_item_quantity(customer_id, product_id, quantity):
    return process_serialized(
        UpdateCartItemQuantity(customer_id=customer_id, product_id=product_id, quantity=quantity),
        cart_key(customer_id),
    )


def remove_from_cart(customer_id, product_id):
    return process_serialized(
        RemoveFromCart(customer_id=customer_id, product_id=product_id),
        cart_key(customer_id),
    )
