"""Order cancellation: hands the stock back and reverses the customer's statistics.

Customers cancel their own pending or confirmed orders; administrators reach
the same path by setting an order's status to cancelled. Stock restoration,
the statistics reversal and the status change share one Unit of Work, and
the status is changed last.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from wholesale.catalogue.stock import adjust_stock
from wholesale.concurrency import STOCK_KEY, order_key, process_serialized
from wholesale.customer.stats import decrement_order_stats
from wholesale.domain import wholesale
from wholesale.errors import ProductNotFound
from wholesale.order.order import CancellationActor, Order

logger = structlog.get_logger(__name__)


@wholesale.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    customer_id = Identifier()  # Owner check; not set when an administrator cancels
    reason = String(max_length=500)
    cancelled_by = String(choices=CancellationActor, default=CancellationActor.CUSTOMER.value)
    admin_notes = Text()


def restore_stock(order) -> int:
    """Give every line's quantity back to the catalogue. Returns the number of lines restored.

    A product deleted since the order was placed has nowhere to take the
    stock back; it is skipped.
    """
    restored = 0
    for item in order.lines:
        try:
            adjust_stock(item.product_id, item.quantity, reason=f"Cancelled order {order.order_number}")
            restored += 1
        except ProductNotFound:
            logger.warning(
                "stock_restore_skipped",
                order_number=order.order_number,
                product_id=str(item.product_id),
                quantity=item.quantity,
            )
    return restored


@wholesale.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        if command.cancelled_by == CancellationActor.ADMIN.value:
            order = repo.find_by_id(command.order_id)
        else:
            order = repo.find_for_customer(command.order_id, command.customer_id)

        order.ensure_cancellable()

        restored = restore_stock(order)
        decrement_order_stats(order.customer_id, order.pricing.total)
        order.cancel(reason=command.reason, cancelled_by=command.cancelled_by, admin_notes=command.admin_notes)
        repo.add(order)

        logger.info(
            "order_cancelled",
            order_id=str(order.id),
            order_number=order.order_number,
            cancelled_by=command.cancelled_by,
            lines_restored=restored,
        )
        return str(order.id)


def cancel_order(order_id, customer_id, reason=None) -> str:
    """Cancel a customer's own order."""
    command = CancelOrder(order_id=order_id, customer_id=customer_id, reason=reason)
    return process_serialized(command, order_key(order_id), STOCK_KEY)
