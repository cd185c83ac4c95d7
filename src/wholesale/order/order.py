"""Order aggregate: the immutable record of a placed cart.

Items and pricing are captured once, at placement. After that an order only
moves through its status lifecycle:

    pending -> confirmed -> processing -> shipped -> delivered -> returned
    pending | confirmed -> cancelled

Administrators may skip forward (a pending order can be marked shipped
directly) but never move an order backwards. ``cancelled`` and ``returned``
are terminal.
"""

import re
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from wholesale.domain import wholesale
from wholesale.errors import InvalidShippingAddress, InvalidTransition
from wholesale.order.events import OrderCancelled, OrderStatusChanged
from wholesale.pricing import OrderPricing, PricingPolicy, line_subtotal, money


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    COD = "cod"
    ONLINE = "online"
    BANK_TRANSFER = "bank-transfer"


class CancellationActor(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


# State machine transition map (forward only, skipping ahead allowed)
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.CONFIRMED: {
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.DELIVERED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.RETURNED: set(),  # Terminal
}

_CANCELLABLE_STATES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

_PINCODE = re.compile(r"^[0-9]{6}$")
_PHONE = re.compile(r"^[0-9]{10,11}$")


def order_number_for(year: int, sequence: int) -> str:
    """``ORD-<year>-<sequence>``, the sequence zero padded to three digits."""
    return f"ORD-{year}-{sequence:03d}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@wholesale.value_object(part_of="Order")
class ShippingAddress:
    """Where the order is delivered, captured at placement and never changed."""

    street = String(required=True, min_length=1, max_length=200)
    city = String(required=True, min_length=1, max_length=100)
    state = String(required=True, min_length=1, max_length=100)
    pincode = String(required=True, max_length=6)
    phone = String(required=True, max_length=11)
    instructions = String(max_length=500)

    @invariant.post
    def pincode_must_be_six_digits(self):
        if not _PINCODE.match(self.pincode or ""):
            raise ValidationError({"pincode": ["Pincode must be exactly 6 digits"]})

    @invariant.post
    def phone_must_be_ten_or_eleven_digits(self):
        if not _PHONE.match(self.phone or ""):
            raise ValidationError({"phone": ["Phone number must be 10 or 11 digits"]})


def shipping_address_from(data) -> ShippingAddress:
    """Build a ``ShippingAddress`` from a plain dict, raising ``InvalidShippingAddress``."""
    if not isinstance(data, dict):
        raise InvalidShippingAddress("Shipping address is required")

    fields = ("street", "city", "state", "pincode", "phone", "instructions")
    values = {name: data.get(name) for name in fields}
    for name in fields:
        if isinstance(values[name], str):
            values[name] = values[name].strip()
    if not values["instructions"]:
        values["instructions"] = None

    try:
        return ShippingAddress(**values)
    except ValidationError as exc:
        error = InvalidShippingAddress("Shipping address is incomplete or malformed")
        error.messages.update(exc.messages)
        raise error from None


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@wholesale.entity(part_of="Order")
class OrderItem:
    """A line of the order: what was bought, at what price, captured at placement."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    sku = String(required=True, max_length=50)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    total_price = Float(required=True, min_value=0.0)
    original_price = Float(min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    position = Integer(default=0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@wholesale.aggregate
class Order:
    order_number = String(required=True, max_length=30, unique=True)
    placed_year = Integer(required=True)
    customer_id = Identifier(required=True)
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing)
    shipping_address = ValueObject(ShippingAddress)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = String(choices=PaymentMethod, required=True)
    tracking_number = String(max_length=100)
    carrier = String(max_length=100)
    estimated_delivery = DateTime()
    actual_delivery = DateTime()
    customer_notes = String(max_length=500)
    admin_notes = Text()
    cancellation_reason = String(max_length=500)
    cancelled_by = String(choices=CancellationActor)
    order_date = DateTime()
    status_updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_number,
        customer_id,
        pricing,
        shipping_address,
        payment_method,
        customer_notes=None,
        placed_at=None,
    ):
        """A pending order. Lines are attached with ``add_line`` before the first save."""
        placed_at = placed_at or datetime.now(UTC)
        return cls(
            order_number=order_number,
            placed_year=placed_at.year,
            customer_id=customer_id,
            pricing=pricing,
            shipping_address=shipping_address,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_method=payment_method,
            customer_notes=customer_notes or None,
            order_date=placed_at,
            status_updated_at=placed_at,
        )

    def add_line(self, product_id, name, sku, quantity, unit_price, original_price=None):
        """Snapshot one cart line. The discount is what the line saves against the original price."""
        discount = 0.0
        if original_price is not None:
            discount = money(max(original_price - unit_price, 0.0) * quantity)

        self.add_items(
            OrderItem(
                product_id=str(product_id),
                name=name,
                sku=sku,
                quantity=quantity,
                unit_price=unit_price,
                total_price=money(unit_price * quantity),
                original_price=original_price,
                discount=discount,
                position=len(self.items),
            )
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def lines(self) -> list[OrderItem]:
        return sorted(self.items, key=lambda item: item.position)

    @property
    def is_cancellable(self) -> bool:
        return OrderStatus(self.status) in _CANCELLABLE_STATES

    def summary(self) -> dict:
        return {
            "total_items": sum(item.quantity for item in self.items),
            "total_products": len(self.items),
            "savings": money(sum(item.discount or 0.0 for item in self.items)),
        }

    def tracking_timeline(self) -> list[dict]:
        """The customer facing progress of the order, one step per milestone."""
        status = OrderStatus(self.status)
        reached = {
            OrderStatus.PENDING: 0,
            OrderStatus.CONFIRMED: 1,
            OrderStatus.PROCESSING: 2,
            OrderStatus.SHIPPED: 3,
            OrderStatus.DELIVERED: 4,
            OrderStatus.RETURNED: 4,
        }.get(status, 0)

        shipped_description = "Your order has been shipped"
        if self.tracking_number:
            shipped_description = f"{shipped_description}. Tracking: {self.tracking_number}"

        milestones = [
            (OrderStatus.PENDING, "Order Placed", "Your order has been placed successfully"),
            (OrderStatus.CONFIRMED, "Order Confirmed", "Your order has been confirmed and is being processed"),
            (OrderStatus.PROCESSING, "Processing", "Your order is being prepared for shipment"),
            (OrderStatus.SHIPPED, "Shipped", shipped_description),
            (OrderStatus.DELIVERED, "Delivered", "Your order has been delivered successfully"),
        ]

        steps = []
        for index, (milestone, title, description) in enumerate(milestones):
            if milestone == OrderStatus.PENDING:
                timestamp = self.order_date
            elif milestone == OrderStatus.DELIVERED:
                timestamp = self.actual_delivery
            else:
                timestamp = self.status_updated_at if milestone == status else None

            steps.append(
                {
                    "status": milestone.value,
                    "title": title,
                    "description": description,
                    "completed": index == 0 or (status != OrderStatus.CANCELLED and index <= reached),
                    "timestamp": timestamp,
                }
            )

        if status == OrderStatus.CANCELLED:
            description = "Your order has been cancelled"
            if self.cancellation_reason:
                description = f"{description}: {self.cancellation_reason}"
            steps.append(
                {
                    "status": OrderStatus.CANCELLED.value,
                    "title": "Cancelled",
                    "description": description,
                    "completed": True,
                    "timestamp": self.status_updated_at,
                }
            )

        return steps

    # -------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------
    def recalculate_totals(self, policy=None):
        """Re-derive pricing from the lines under the current pricing policy.

        Totals are otherwise fixed at placement; this is the only way to change them.
        """
        policy = policy or PricingPolicy.from_config()
        subtotal = line_subtotal(self.items)
        discount = min(self.pricing.discount if self.pricing else 0.0, subtotal)
        shipping_cost = policy.shipping_for(subtotal)
        tax = policy.tax_for(subtotal)
        self.pricing = OrderPricing(
            subtotal=subtotal,
            discount=discount,
            shipping_cost=shipping_cost,
            tax=tax,
            total=money(subtotal - discount + shipping_cost + tax),
        )

    # -------------------------------------------------------------------
    # Status lifecycle
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(
                f"Cannot change order status from {current.value} to {target_status.value}",
                order_id=str(self.id),
                current_status=current.value,
                requested_status=target_status.value,
            )

    def append_admin_note(self, note, at=None):
        note = (note or "").strip()
        if not note:
            return
        stamp = (at or datetime.now(UTC)).strftime("%Y-%m-%d %H:%M:%S")
        line = f"[{stamp}] {note}"
        self.admin_notes = f"{self.admin_notes}\n{line}" if self.admin_notes else line

    def update_status(
        self,
        new_status,
        tracking_number=None,
        carrier=None,
        estimated_delivery=None,
        admin_notes=None,
    ):
        """Move the order forward, or re-apply its current status to update tracking.

        Cancellation is not handled here: it restores stock and goes through
        ``cancel`` instead.
        """
        target = OrderStatus(new_status)
        current = OrderStatus(self.status)
        if target == OrderStatus.CANCELLED:
            raise InvalidTransition(
                "Cancellation must go through order cancellation",
                order_id=str(self.id),
                current_status=current.value,
                requested_status=target.value,
            )
        if target != current or not _VALID_TRANSITIONS[current]:
            self._assert_can_transition(target)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = target.value
            self.status_updated_at = now
            if tracking_number:
                self.tracking_number = tracking_number
            if carrier:
                self.carrier = carrier
            if estimated_delivery:
                self.estimated_delivery = estimated_delivery
            if target == OrderStatus.DELIVERED and current != OrderStatus.DELIVERED:
                self.actual_delivery = now
            self.append_admin_note(admin_notes, at=now)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=current.value,
                new_status=target.value,
                tracking_number=self.tracking_number,
                carrier=self.carrier,
                changed_at=now,
            )
        )

    def ensure_cancellable(self):
        current = OrderStatus(self.status)
        if current not in _CANCELLABLE_STATES:
            raise InvalidTransition(
                f"Order cannot be cancelled in {current.value} status",
                order_id=str(self.id),
                current_status=current.value,
                requested_status=OrderStatus.CANCELLED.value,
            )

    def cancel(self, reason=None, cancelled_by=CancellationActor.CUSTOMER.value, admin_notes=None):
        """Mark the order cancelled. Stock and customer statistics are restored by the caller."""
        self.ensure_cancellable()
        current = OrderStatus(self.status)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = OrderStatus.CANCELLED.value
            self.status_updated_at = now
            self.cancellation_reason = reason or None
            self.cancelled_by = CancellationActor(cancelled_by).value
            self.append_admin_note(admin_notes, at=now)

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                previous_status=current.value,
                reason=reason,
                cancelled_by=self.cancelled_by,
                total=self.pricing.total,
                cancelled_at=now,
            )
        )
