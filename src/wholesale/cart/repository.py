"""Repository for the Cart aggregate."""

from protean.utils.globals import current_domain

from wholesale.cart.cart import Cart
from wholesale.domain import wholesale


@wholesale.repository(part_of=Cart)
class CartRepository:
    def find_for_customer(self, customer_id) -> Cart | None:
        items = self._dao.query.filter(customer_id=str(customer_id)).all().items
        return items[0] if items else None


def load_cart(customer_id) -> Cart:
    """The customer's cart, opened on first access. The caller persists it."""
    cart = current_domain.repository_for(Cart).find_for_customer(customer_id)
    if cart is None:
        cart = Cart.create(customer_id)
    return cart
