"""Caller identity, as supplied by the authentication gateway in front of this service.

The gateway authenticates the request and forwards the customer id in
``X-Customer-Id`` and, for staff, ``X-Role: admin``. Every cart and order
operation receives the resolved id explicitly.
"""

import structlog
from fastapi import Header, HTTPException

from wholesale.utils.logging import add_context

logger = structlog.get_logger(__name__)

ADMIN_ROLE = "admin"


async def current_customer(x_customer_id: str | None = Header(default=None)) -> str:
    customer_id = (x_customer_id or "").strip()
    if not customer_id:
        raise HTTPException(status_code=401, detail="Not authorized, no customer identity")

    add_context(customer_id=customer_id)
    return customer_id


async def current_admin(
    x_customer_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
) -> str:
    admin_id = await current_customer(x_customer_id)
    if (x_role or "").strip().lower() != ADMIN_ROLE:
        logger.warning("admin_access_denied", customer_id=admin_id, role=x_role)
        raise HTTPException(status_code=403, detail="Admin access required")
    return admin_id
