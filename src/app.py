"""Wholesale FastAPI application.

Web server that processes cart and order commands synchronously via HTTP.
Each request runs inside the wholesale domain context, with a request id and
the caller's customer id bound to every log line it produces.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - "test"/"development" → in-memory provider
#   - "production"         → PostgreSQL via DATABASE_URL
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wholesale.domain import wholesale
from wholesale.utils.db import check_db
from wholesale.utils.logging import add_context, clear_context, get_logger

wholesale.init()

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Wholesale API",
    description="B2B wholesale storefront: carts, order placement and order lifecycle",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the wholesale domain context and bind request-scoped log context."""
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    clear_context()
    add_context(request_id=request_id, path=request.url.path)

    with wholesale.domain_context():
        response = await call_next(request)

    response.headers["X-Request-ID"] = request_id
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from wholesale.api import admin_router, cart_router, order_router, register_exception_handlers  # noqa: E402

app.include_router(cart_router)
app.include_router(order_router)
app.include_router(admin_router)
register_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    databases = check_db(wholesale)
    healthy = all(state == "ok" for state in databases.values())
    if not healthy:
        logger.warning("health_degraded", databases=databases)
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "success": healthy,
            "status": "ok" if healthy else "degraded",
            "domain": wholesale.name,
            "databases": databases,
        },
    )
