"""Administrative order status updates.

Moving an order forward has no stock side effects. Setting it to cancelled
does, so that request is routed through order cancellation instead.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from wholesale.concurrency import STOCK_KEY, order_key, process_serialized
from wholesale.domain import wholesale
from wholesale.order.cancellation import CancelOrder
from wholesale.order.order import CancellationActor, Order, OrderStatus


@wholesale.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    tracking_number = String(max_length=100)
    carrier = String(max_length=100)
    estimated_delivery = DateTime()
    admin_notes = Text()


def order_status_from(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        accepted = ", ".join(status.value for status in OrderStatus)
        raise ValidationError({"status": [f"Status must be one of: {accepted}"]}) from None


@wholesale.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        status = order_status_from(command.status)
        repo = current_domain.repository_for(Order)
        order = repo.find_by_id(command.order_id)
        order.update_status(
            status.value,
            tracking_number=command.tracking_number,
            carrier=command.carrier,
            estimated_delivery=command.estimated_delivery,
            admin_notes=command.admin_notes,
        )
        repo.add(order)
        return str(order.id)


def update_order_status(
    order_id,
    status,
    tracking_number=None,
    carrier=None,
    estimated_delivery=None,
    admin_notes=None,
) -> str:
    if order_status_from(status) == OrderStatus.CANCELLED:
        command = CancelOrder(
            order_id=order_id,
            reason=(admin_notes or "")[:500] or None,
            cancelled_by=CancellationActor.ADMIN.value,
            admin_notes=admin_notes,
        )
        return process_serialized(command, order_key(order_id), STOCK_KEY)

    command = UpdateOrderStatus(
        order_id=order_id,
        status=status,
        tracking_number=tracking_number,
        carrier=carrier,
        estimated_delivery=estimated_delivery,
        admin_notes=admin_notes,
    )
    return process_serialized(command, order_key(order_id))
