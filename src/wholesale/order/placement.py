"""Order placement: converts a customer's cart into an order.

Placement is one command handler, so everything it writes (the order, the
stock decrements, the customer's statistics and the emptied cart) commits or
rolls back together in the handler's Unit of Work. Each write is also
recorded with its undo; if a later write fails, the undos run newest first
before the error leaves the handler, so a failed placement never leaves an
order without its stock taken or stock taken without an order.

Everything that can be checked without writing is checked first: payment
method, shipping address, an empty cart, and every line against the live
catalogue. The first violation is returned and nothing is written.
"""

import json
from datetime import UTC, datetime
from types import SimpleNamespace

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from wholesale.cart.cart import Cart
from wholesale.catalogue.product import Product
from wholesale.catalogue.stock import StockBatch
from wholesale.concurrency import STOCK_KEY, cart_key, process_serialized
from wholesale.customer.stats import decrement_order_stats, increment_order_stats
from wholesale.domain import wholesale
from wholesale.errors import CheckoutFailed, EmptyCart, InvalidPaymentMethod, ProductNotFound, WholesaleError
from wholesale.order.events import OrderPlaced
from wholesale.order.order import Order, PaymentMethod, order_number_for, shipping_address_from
from wholesale.pricing import quote_order
from wholesale.saga import Compensations

logger = structlog.get_logger(__name__)


@wholesale.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    payment_method = String(max_length=20)
    shipping_address = Text(required=True)  # JSON object
    customer_notes = String(max_length=500)
    requested_lines = Text()  # JSON: the cart lines as they stood when the request arrived


def payment_method_from(value) -> PaymentMethod:
    try:
        return PaymentMethod(value)
    except ValueError:
        accepted = ", ".join(method.value for method in PaymentMethod)
        raise InvalidPaymentMethod(
            f"Payment method must be one of: {accepted}", payment_method=value
        ) from None


def requested_lines_from(payload) -> list:
    """Cart lines recorded on a ``PlaceOrder`` command, as objects ``_validate_lines`` accepts."""
    return [SimpleNamespace(**line) for line in json.loads(payload or "[]")]


def discard_order(order):
    """Undo an order write: drop its lines, then the order itself."""
    repo = current_domain.repository_for(Order)
    for item in list(order.items):
        order.remove_items(item)
    repo.add(order)
    repo._dao.delete(order)


@wholesale.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        payment_method = payment_method_from(command.payment_method)
        shipping_address = shipping_address_from(json.loads(command.shipping_address))

        cart_repo = current_domain.repository_for(Cart)
        cart = cart_repo.find_for_customer(command.customer_id)
        if cart is None or cart.is_empty:
            # Emptied by a concurrent placement of the same cart: report the line it took the stock from
            self._validate_lines(requested_lines_from(command.requested_lines))
            raise EmptyCart("Cart is empty", customer_id=str(command.customer_id))

        lines = cart.lines
        self._validate_lines(lines)

        pricing = quote_order(lines, discount=cart.totals.discount if cart.totals else 0.0)
        placed_at = datetime.now(UTC)

        order_repo = current_domain.repository_for(Order)
        order_number = order_number_for(placed_at.year, order_repo.count_placed_in(placed_at.year) + 1)
        order = Order.create(
            order_number=order_number,
            customer_id=command.customer_id,
            pricing=pricing,
            shipping_address=shipping_address,
            payment_method=payment_method.value,
            customer_notes=command.customer_notes,
            placed_at=placed_at,
        )
        for line in lines:
            order.add_line(
                product_id=line.product_id,
                name=line.name,
                sku=line.sku,
                quantity=line.quantity,
                unit_price=line.unit_price,
                original_price=line.original_price,
            )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(command.customer_id),
                items=json.dumps(
                    [
                        {
                            "product_id": str(line.product_id),
                            "sku": line.sku,
                            "quantity": line.quantity,
                            "unit_price": line.unit_price,
                        }
                        for line in lines
                    ]
                ),
                item_count=len(lines),
                subtotal=pricing.subtotal,
                discount=pricing.discount,
                shipping_cost=pricing.shipping_cost,
                tax=pricing.tax,
                total=pricing.total,
                payment_method=payment_method.value,
                placed_at=placed_at,
            )
        )

        compensations = Compensations("place_order", order_number=order_number, customer_id=str(command.customer_id))
        try:
            order_repo.add(order)
            compensations.record("order_written", discard_order, order)

            batch = StockBatch(reason=f"Order {order_number}")
            compensations.record("stock_decremented", batch.revert)
            for line in lines:
                batch.apply(line.product_id, -line.quantity)

            increment_order_stats(command.customer_id, pricing.total, placed_at=placed_at)
            compensations.record("stats_incremented", decrement_order_stats, command.customer_id, pricing.total)

            cart.clear()
            cart_repo.add(cart)
        except Exception as exc:
            completed = compensations.steps
            _, failed = compensations.run()
            if failed:
                logger.error("order_rollback_incomplete", order_number=order_number, failed=failed)
                raise CheckoutFailed(order_number=order_number) from exc
            if isinstance(exc, WholesaleError):
                logger.warning(
                    "order_placement_rejected",
                    order_number=order_number,
                    reason=exc.reason,
                    completed_steps=completed,
                )
                raise
            logger.exception("order_placement_failed", order_number=order_number, completed_steps=completed)
            raise CheckoutFailed() from exc

        logger.info(
            "order_placed",
            order_id=str(order.id),
            order_number=order_number,
            customer_id=str(command.customer_id),
            total=pricing.total,
            items=len(lines),
        )
        return str(order.id)

    def _validate_lines(self, lines):
        products = current_domain.repository_for(Product).find_many(line.product_id for line in lines)
        for line in lines:
            product = products.get(str(line.product_id))
            if product is None:
                raise ProductNotFound(
                    f"{line.name} is no longer available",
                    status_code=400,
                    product_id=str(line.product_id),
                    product_name=line.name,
                )
            product.ensure_orderable(line.quantity)


def place_order(customer_id, payment_method, shipping_address, customer_notes=None) -> str:
    """Place an order for the customer's cart. Returns the new order's id.

    The cart lines are read before the locks are taken and travel with the
    command, so a placement that queued behind another one for the same cart
    is judged against the lines it was asked to place.
    """
    cart = current_domain.repository_for(Cart).find_for_customer(customer_id)
    requested = [
        {"product_id": str(line.product_id), "name": line.name, "quantity": line.quantity}
        for line in (cart.lines if cart else [])
    ]
    command = PlaceOrder(
        customer_id=customer_id,
        payment_method=payment_method,
        shipping_address=json.dumps(shipping_address),
        customer_notes=customer_notes,
        requested_lines=json.dumps(requested),
    )
    return process_serialized(command, cart_key(customer_id), STOCK_KEY)
