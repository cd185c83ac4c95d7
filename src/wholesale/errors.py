"""Domain error taxonomy.

Every rule violation raised by the cart, catalogue and order code is a
``WholesaleError``. It is a Protean ``ValidationError`` (so Unit of Work
rollback, handler propagation and ``exc.messages`` behave as usual) that also
carries a machine readable ``reason``, the HTTP status the API maps it to and
whatever context the client needs to resynchronize: product id and name,
available and requested quantities, current order status.

A kind keeps one status everywhere except where the caller passes
``status_code``: a product that vanished from a cart line at checkout is a
conflict (400), while an unknown product id on add-to-cart is a 404.
"""

from typing import Any

from protean.exceptions import ValidationError


class WholesaleError(ValidationError):
    status_code = 400
    field = "_entity"
    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None, *, status_code: int | None = None, **context: Any) -> None:
        if status_code is not None:
            self.status_code = status_code
        self.message = message or self.default_message
        self.context = {key: value for key, value in context.items() if value is not None}
        super().__init__({self.field: [self.message]})

    @property
    def reason(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": False,
            "reason": self.reason,
            "message": self.message,
            "details": self.messages,
            **self.context,
        }


# ---------------------------------------------------------------------------
# Validation errors (client-fixable)
# ---------------------------------------------------------------------------
class BelowMinimumOrder(WholesaleError):
    field = "quantity"
    default_message = "Quantity is below the minimum order quantity"


class AboveMaximumOrder(WholesaleError):
    field = "quantity"
    default_message = "Quantity is above the maximum order quantity"


class QuantityExceedsMax(WholesaleError):
    field = "quantity"
    default_message = "Quantity exceeds maximum order limit"


class InvalidShippingAddress(WholesaleError):
    field = "shipping_address"
    default_message = "Shipping address is incomplete or malformed"


class InvalidPaymentMethod(WholesaleError):
    field = "payment_method"
    default_message = "Payment method is not supported"


class InvalidPromoCode(WholesaleError):
    field = "promo_code"
    default_message = "Invalid promo code"


class PromoNotEligible(WholesaleError):
    field = "promo_code"
    default_message = "Cart is not eligible for this promo code"


class EmptyCart(WholesaleError):
    field = "cart"
    default_message = "Cart is empty"


# ---------------------------------------------------------------------------
# Conflict errors (state changed since the client last read it)
# ---------------------------------------------------------------------------
class InsufficientStock(WholesaleError):
    field = "stock_quantity"
    default_message = "Insufficient stock"


class ProductInactive(WholesaleError):
    field = "product_id"
    default_message = "Product is not available"


class InvalidTransition(WholesaleError):
    field = "status"
    default_message = "Order cannot move to the requested status"


# ---------------------------------------------------------------------------
# Not found errors
# ---------------------------------------------------------------------------
class ProductNotFound(WholesaleError):
    status_code = 404
    field = "product_id"
    default_message = "Product not found"


class ItemNotFound(WholesaleError):
    status_code = 404
    field = "product_id"
    default_message = "Item not found in cart"


class OrderNotFound(WholesaleError):
    status_code = 404
    field = "order_id"
    default_message = "Order not found"


# ---------------------------------------------------------------------------
# System errors
# ---------------------------------------------------------------------------
class CheckoutFailed(WholesaleError):
    status_code = 500
    field = "order"
    default_message = "Failed to create order"
