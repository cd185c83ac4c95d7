"""Pydantic request/response schemas for the wholesale API.

These are external contracts, kept separate from the Protean commands they
are translated into. Fields are snake_case in Python and camelCase on the
wire (``productId``, ``paymentMethod``, ``shippingAddress``); requests are
accepted in either form.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(CamelModel):
    product_id: str
    quantity: int = 1

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"examples": [{"productId": "5b0c2f9e-7a43-4c55-9d3e-1f2a3b4c5d6e", "quantity": 10}]},
    )


class UpdateCartItemRequest(CamelModel):
    quantity: int


class ApplyPromoRequest(CamelModel):
    code: str = Field(min_length=1, max_length=50)


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class ShippingAddressSchema(CamelModel):
    """Address fields are checked by the domain, so missing ones still reach it."""

    street: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    phone: str | None = None
    instructions: str | None = None


class PlaceOrderRequest(CamelModel):
    payment_method: str | None = None
    shipping_address: ShippingAddressSchema | None = None
    customer_notes: str | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "paymentMethod": "cod",
                    "shippingAddress": {
                        "street": "14 MG Road",
                        "city": "Bengaluru",
                        "state": "Karnataka",
                        "pincode": "560001",
                        "phone": "9876543210",
                    },
                    "customerNotes": "Deliver before noon",
                }
            ]
        },
    )


class CancelOrderRequest(CamelModel):
    reason: str | None = None


class UpdateOrderStatusRequest(CamelModel):
    status: str
    tracking_number: str | None = None
    carrier: str | None = None
    estimated_delivery: datetime | None = None
    admin_notes: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartItemSchema(CamelModel):
    product_id: str
    name: str
    sku: str
    quantity: int
    unit_price: float
    original_price: float | None = None
    line_total: float
    min_order_quantity: int
    max_order_quantity: int
    available_quantity: int | None = None
    in_stock: bool


class CartSummarySchema(CamelModel):
    item_count: int = 0
    total_items: int = 0
    subtotal: float = 0.0
    discount: float = 0.0
    shipping_cost: float = 0.0
    total: float = 0.0
    savings: float = 0.0


class CartSchema(CamelModel):
    id: str
    customer_id: str
    items: list[CartItemSchema]
    subtotal: float
    discount: float
    shipping_cost: float
    total: float
    promo_code: str | None = None
    status: str
    last_updated: datetime | None = None
    expires_at: datetime | None = None

    @classmethod
    def from_cart(cls, cart) -> "CartSchema":
        summary = cart.summary()
        return cls(
            id=str(cart.id),
            customer_id=str(cart.customer_id),
            items=[
                CartItemSchema(
                    product_id=str(item.product_id),
                    name=item.name,
                    sku=item.sku,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    original_price=item.original_price,
                    line_total=item.line_total,
                    min_order_quantity=item.min_order_quantity,
                    max_order_quantity=item.max_order_quantity,
                    available_quantity=item.available_quantity,
                    in_stock=item.in_stock,
                )
                for item in cart.lines
            ],
            subtotal=summary["subtotal"],
            discount=summary["discount"],
            shipping_cost=summary["shipping_cost"],
            total=summary["total"],
            promo_code=cart.promo_code,
            status=cart.readiness.value,
            last_updated=cart.last_updated,
            expires_at=cart.expires_at,
        )


class PricingSchema(CamelModel):
    subtotal: float
    discount: float
    shipping_cost: float
    tax: float
    total: float


class OrderItemSchema(CamelModel):
    product_id: str
    name: str
    sku: str
    quantity: int
    unit_price: float
    total_price: float
    original_price: float | None = None
    discount: float


class OrderSummarySchema(CamelModel):
    total_items: int
    total_products: int
    savings: float


class OrderSchema(CamelModel):
    id: str
    order_number: str
    customer_id: str
    items: list[OrderItemSchema]
    subtotal: float
    discount: float
    shipping_cost: float
    tax: float
    total: float
    shipping_address: dict[str, Any] | None = None
    status: str
    payment_status: str
    payment_method: str
    tracking_number: str | None = None
    carrier: str | None = None
    estimated_delivery: datetime | None = None
    actual_delivery: datetime | None = None
    customer_notes: str | None = None
    admin_notes: str | None = None
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    order_date: datetime | None = None
    status_updated_at: datetime | None = None
    order_summary: OrderSummarySchema

    @classmethod
    def from_order(cls, order, include_admin_notes=False) -> "OrderSchema":
        pricing = order.pricing
        address = order.shipping_address
        return cls(
            id=str(order.id),
            order_number=order.order_number,
            customer_id=str(order.customer_id),
            items=[
                OrderItemSchema(
                    product_id=str(item.product_id),
                    name=item.name,
                    sku=item.sku,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.total_price,
                    original_price=item.original_price,
                    discount=item.discount or 0.0,
                )
                for item in order.lines
            ],
            subtotal=pricing.subtotal,
            discount=pricing.discount,
            shipping_cost=pricing.shipping_cost,
            tax=pricing.tax,
            total=pricing.total,
            shipping_address=(
                {
                    "street": address.street,
                    "city": address.city,
                    "state": address.state,
                    "pincode": address.pincode,
                    "phone": address.phone,
                    "instructions": address.instructions,
                }
                if address
                else None
            ),
            status=order.status,
            payment_status=order.payment_status,
            payment_method=order.payment_method,
            tracking_number=order.tracking_number,
            carrier=order.carrier,
            estimated_delivery=order.estimated_delivery,
            actual_delivery=order.actual_delivery,
            customer_notes=order.customer_notes,
            admin_notes=order.admin_notes if include_admin_notes else None,
            cancellation_reason=order.cancellation_reason,
            cancelled_by=order.cancelled_by,
            order_date=order.order_date,
            status_updated_at=order.status_updated_at,
            order_summary=OrderSummarySchema(**order.summary()),
        )


class PaginationSchema(CamelModel):
    current_page: int
    total_pages: int
    total_orders: int
    has_next: bool
    has_prev: bool


class TrackingSchema(CamelModel):
    order_number: str
    status: str
    tracking_number: str | None = None
    carrier: str | None = None
    estimated_delivery: datetime | None = None
    actual_delivery: datetime | None = None


class TrackingStepSchema(CamelModel):
    status: str
    title: str
    description: str
    completed: bool
    timestamp: datetime | None = None


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value


def envelope(message: str | None = None, **data: Any) -> dict[str, Any]:
    """The success body every endpoint returns: ``{success, message?, data}``."""
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    body["data"] = {to_camel(key): _dump(value) for key, value in data.items()}
    return body
