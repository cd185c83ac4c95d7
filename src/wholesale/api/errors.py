"""Exception handlers mapping domain errors onto the API's error body.

Every failure is rendered as ``{success: false, reason, message, details}``
plus whatever context the error carries (product id and name, available
quantity, current status). Unexpected exceptions get a generic message; the
detail goes to the logs only.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from pydantic.alias_generators import to_camel
from starlette.exceptions import HTTPException as StarletteHTTPException

from wholesale.errors import WholesaleError

logger = structlog.get_logger(__name__)


def _first_message(messages) -> str:
    if isinstance(messages, dict):
        for field, errors in messages.items():
            if errors:
                first = errors[0] if isinstance(errors, list) else errors
                return f"{field}: {first}" if field != "_entity" else str(first)
    return str(messages)


def _error_body(reason: str, message: str, details=None) -> dict:
    body = {"success": False, "reason": reason, "message": message}
    if details is not None:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(WholesaleError)
    async def wholesale_error_handler(request: Request, exc: WholesaleError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, reason=exc.reason, exc_info=exc.__cause__ or exc)
        else:
            logger.warning("request_rejected", path=request.url.path, reason=exc.reason, message=exc.message)
        body = {to_camel(key): value for key, value in exc.to_dict().items()}
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        logger.warning("request_invalid", path=request.url.path, details=exc.messages)
        return JSONResponse(
            status_code=400,
            content=_error_body("ValidationError", _first_message(exc.messages), exc.messages),
        )

    @app.exception_handler(ObjectNotFoundError)
    async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content=_error_body("NotFound", str(exc)))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            {"field": ".".join(str(part) for part in error["loc"] if part != "body"), "message": error["msg"]}
            for error in exc.errors()
        ]
        message = f"{details[0]['field']}: {details[0]['message']}" if details else "Invalid request"
        return JSONResponse(status_code=400, content=_error_body("RequestValidationError", message, details))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body("HTTPError", str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("request_crashed", path=request.url.path, error=type(exc).__name__, exc_info=exc)
        return JSONResponse(status_code=500, content=_error_body("InternalError", "Internal server error"))
