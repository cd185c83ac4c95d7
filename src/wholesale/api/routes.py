"""FastAPI routes for the wholesale API: the cart, orders and order administration."""

from fastapi import APIRouter, Depends, Query
from protean.utils.globals import current_domain

from wholesale.api.auth import current_admin, current_customer
from wholesale.api.schemas import (
    AddToCartRequest,
    ApplyPromoRequest,
    CancelOrderRequest,
    CartSchema,
    CartSummarySchema,
    OrderSchema,
    PaginationSchema,
    PlaceOrderRequest,
    PricingSchema,
    TrackingSchema,
    TrackingStepSchema,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
    envelope,
)
from wholesale.cart.cart import Cart
from wholesale.cart.items import add_to_cart, remove_from_cart, update_cart_item_quantity
from wholesale.cart.management import apply_promo_code, clear_cart, open_cart
from wholesale.order.cancellation import cancel_order
from wholesale.order.order import Order
from wholesale.order.placement import place_order
from wholesale.order.repository import MAX_PAGE_SIZE
from wholesale.order.status import update_order_status
from wholesale.pricing import PricingPolicy, money


def _cart(cart_id) -> Cart:
    return current_domain.repository_for(Cart).get(cart_id)


def _pricing(pricing) -> PricingSchema:
    return PricingSchema(
        subtotal=pricing.subtotal,
        discount=pricing.discount,
        shipping_cost=pricing.shipping_cost,
        tax=pricing.tax,
        total=pricing.total,
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("")
async def get_cart(customer_id: str = Depends(current_customer)) -> dict:
    return envelope(cart=CartSchema.from_cart(open_cart(customer_id)))


@cart_router.get("/summary")
async def get_cart_summary(customer_id: str = Depends(current_customer)) -> dict:
    cart = open_cart(customer_id)
    policy = PricingPolicy.from_config()
    preview = cart.checkout_preview(policy)
    return envelope(
        summary=CartSummarySchema(**cart.summary()),
        checkout=_pricing(preview),
        free_shipping_threshold=policy.free_shipping_threshold,
        amount_to_free_shipping=money(max(policy.free_shipping_threshold - preview.subtotal, 0.0)),
    )


@cart_router.post("/add")
async def add_cart_item(body: AddToCartRequest, customer_id: str = Depends(current_customer)) -> dict:
    cart_id = add_to_cart(customer_id, body.product_id, body.quantity)
    return envelope("Item added to cart successfully", cart=CartSchema.from_cart(_cart(cart_id)))


@cart_router.put("/update/{product_id}")
async def update_cart_item(
    product_id: str,
    body: UpdateCartItemRequest,
    customer_id: str = Depends(current_customer),
) -> dict:
    cart_id = update_cart_item_quantity(customer_id, product_id, body.quantity)
    return envelope("Cart updated successfully", cart=CartSchema.from_cart(_cart(cart_id)))


@cart_router.delete("/remove/{product_id}")
async def remove_cart_item(product_id: str, customer_id: str = Depends(current_customer)) -> dict:
    cart_id = remove_from_cart(customer_id, product_id)
    return envelope("Item removed from cart successfully", cart=CartSchema.from_cart(_cart(cart_id)))


@cart_router.delete("/clear")
async def empty_cart(customer_id: str = Depends(current_customer)) -> dict:
    cart_id = clear_cart(customer_id)
    return envelope("Cart cleared successfully", cart=CartSchema.from_cart(_cart(cart_id)))


@cart_router.post("/promo")
async def apply_promo(body: ApplyPromoRequest, customer_id: str = Depends(current_customer)) -> dict:
    cart_id = apply_promo_code(customer_id, body.code)
    return envelope("Promo code applied successfully", cart=CartSchema.from_cart(_cart(cart_id)))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201)
async def create_order(body: PlaceOrderRequest, customer_id: str = Depends(current_customer)) -> dict:
    order_id = place_order(
        customer_id,
        payment_method=body.payment_method,
        shipping_address=body.shipping_address.model_dump() if body.shipping_address else None,
        customer_notes=body.customer_notes,
    )
    order = current_domain.repository_for(Order).get(order_id)
    return envelope("Order placed successfully", order=OrderSchema.from_order(order))


@order_router.get("")
async def list_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=MAX_PAGE_SIZE),
    status: str | None = Query(default=None),
    customer_id: str = Depends(current_customer),
) -> dict:
    result = current_domain.repository_for(Order).list_for_customer(customer_id, page=page, limit=limit, status=status)
    return envelope(
        orders=[OrderSchema.from_order(order) for order in result.orders],
        pagination=PaginationSchema(**result.pagination()),
    )


@order_router.get("/{order_id}")
async def get_order(order_id: str, customer_id: str = Depends(current_customer)) -> dict:
    order = current_domain.repository_for(Order).find_for_customer(order_id, customer_id)
    return envelope(order=OrderSchema.from_order(order))


@order_router.get("/{order_id}/tracking")
async def get_order_tracking(order_id: str, customer_id: str = Depends(current_customer)) -> dict:
    order = current_domain.repository_for(Order).find_for_customer(order_id, customer_id)
    return envelope(
        order=TrackingSchema(
            order_number=order.order_number,
            status=order.status,
            tracking_number=order.tracking_number,
            carrier=order.carrier,
            estimated_delivery=order.estimated_delivery,
            actual_delivery=order.actual_delivery,
        ),
        tracking_events=[TrackingStepSchema(**step) for step in order.tracking_timeline()],
    )


@order_router.put("/{order_id}/cancel")
async def cancel_customer_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    customer_id: str = Depends(current_customer),
) -> dict:
    cancel_order(order_id, customer_id, reason=body.reason if body else None)
    order = current_domain.repository_for(Order).get(order_id)
    return envelope("Order cancelled successfully", order=OrderSchema.from_order(order))


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin/orders", tags=["admin"])


@admin_router.get("")
async def list_all_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
    status: str | None = Query(default=None),
    payment_status: str | None = Query(default=None, alias="paymentStatus"),
    admin_id: str = Depends(current_admin),
) -> dict:
    result = current_domain.repository_for(Order).list_all(
        page=page, limit=limit, status=status, payment_status=payment_status
    )
    return envelope(
        orders=[OrderSchema.from_order(order, include_admin_notes=True) for order in result.orders],
        pagination=PaginationSchema(**result.pagination()),
    )


@admin_router.put("/{order_id}/status")
async def update_status(
    order_id: str,
    body: UpdateOrderStatusRequest,
    admin_id: str = Depends(current_admin),
) -> dict:
    update_order_status(
        order_id,
        body.status,
        tracking_number=body.tracking_number,
        carrier=body.carrier,
        estimated_delivery=body.estimated_delivery,
        admin_notes=body.admin_notes,
    )
    order = current_domain.repository_for(Order).get(order_id)
    return envelope("Order status updated successfully", order=OrderSchema.from_order(order, include_admin_notes=True))
