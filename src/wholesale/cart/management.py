"""Cart management: opening (and refreshing) a cart, clearing it, promo codes."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from wholesale.cart.cart import Cart
from wholesale.cart.repository import load_cart
from wholesale.catalogue.product import Product
from wholesale.concurrency import cart_key, process_serialized
from wholesale.domain import wholesale


@wholesale.command(part_of="Cart")
class OpenCart:
    """Fetch the customer's cart, creating it if needed, and refresh line availability."""

    customer_id = Identifier(required=True)


@wholesale.command(part_of="Cart")
class ClearCart:
    customer_id = Identifier(required=True)


@wholesale.command(part_of="Cart")
class ApplyPromoCode:
    customer_id = Identifier(required=True)
    code = String(required=True, max_length=50)


@wholesale.command_handler(part_of=Cart)
class CartManagementHandler:
    @handle(OpenCart)
    def open_cart(self, command):
        cart = load_cart(command.customer_id)
        if not cart.is_empty:
            products = current_domain.repository_for(Product).find_many(item.product_id for item in cart.items)
            cart.refresh_availability(products)

        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = load_cart(command.customer_id)
        cart.clear()
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)

    @handle(ApplyPromoCode)
    def apply_promo_code(self, command):
        cart = load_cart(command.customer_id)
        cart.apply_promo(command.code)
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)


def open_cart(customer_id) -> Cart:
    """The customer's refreshed cart, as the API and tests read it."""
    cart_id = process_serialized(OpenCart(customer_id=customer_id), cart_key(customer_id))
    return current_domain.repository_for(Cart).get(cart_id)


def clear_cart(customer_id):
    return process_serialized(ClearCart(customer_id=customer_id), cart_key(customer_id))


def apply_promo_code(customer_id, code):
    return process_serialized(ApplyPromoCode(customer_id=customer_id, code=code), cart_key(customer_id))
