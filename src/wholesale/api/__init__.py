"""Wholesale HTTP API package."""

from wholesale.api.errors import register_exception_handlers
from wholesale.api.routes import admin_router, cart_router, order_router

__all__ = ["admin_router", "cart_router", "order_router", "register_exception_handlers"]
