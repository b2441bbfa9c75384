"""Map pipeline failures to HTTP responses.

Conflicts carry the detail the buyer needs to decide what to do next
(available stock, current status). Data-integrity failures are logged loudly
and answered with a bare 500.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, InvalidOperationError, ObjectNotFoundError, ValidationError

from commerce.errors import (
    AlreadyProcessed,
    DataIntegrityError,
    GatewayError,
    GatewayTimeout,
    InsufficientStock,
    InvalidTransition,
    ProductInactive,
)

logger = structlog.get_logger(__name__)


def _messages(exc) -> dict:
    messages = getattr(exc, "messages", None)
    return messages if isinstance(messages, dict) else {"error": [str(exc)]}


async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": "validation_error", "detail": _messages(exc)})


async def _not_found(request: Request, exc: ObjectNotFoundError):
    return JSONResponse(status_code=404, content={"error": "not_found", "detail": _messages(exc)})


async def _insufficient_stock(request: Request, exc: InsufficientStock):
    return JSONResponse(
        status_code=409,
        content={
            "error": "insufficient_stock",
            "detail": str(exc),
            "product_id": exc.product_id,
            "available": exc.available,
            "requested": exc.requested,
        },
    )


async def _invalid_transition(request: Request, exc: InvalidTransition):
    return JSONResponse(
        status_code=409,
        content={"error": "invalid_transition", "detail": str(exc), "current": exc.current, "target": exc.target},
    )


async def _product_inactive(request: Request, exc: ProductInactive):
    return JSONResponse(
        status_code=409,
        content={"error": "product_inactive", "detail": str(exc), "product_id": exc.product_id},
    )


async def _already_processed(request: Request, exc: AlreadyProcessed):
    return JSONResponse(status_code=409, content={"error": "already_processed", "detail": str(exc)})


async def _invalid_operation(request: Request, exc: InvalidOperationError):
    return JSONResponse(status_code=409, content={"error": "conflict", "detail": _messages(exc)})


async def _stale_write(request: Request, exc: ExpectedVersionError):
    logger.warning("concurrent_write_rejected", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=409,
        content={
            "error": "concurrent_update",
            "detail": "The record changed while this request ran",
            "retryable": True,
        },
        headers={"Retry-After": "1"},
    )


async def _gateway_timeout(request: Request, exc: GatewayTimeout):
    return JSONResponse(status_code=504, content={"error": "gateway_timeout", "detail": str(exc)})


async def _gateway_error(request: Request, exc: GatewayError):
    return JSONResponse(status_code=502, content={"error": "gateway_error", "detail": str(exc)})


async def _data_integrity(request: Request, exc: DataIntegrityError):
    logger.error("data_integrity_violation", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"error": "data_integrity_violation"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(InsufficientStock, _insufficient_stock)
    app.add_exception_handler(InvalidTransition, _invalid_transition)
    app.add_exception_handler(ProductInactive, _product_inactive)
    app.add_exception_handler(AlreadyProcessed, _already_processed)
    app.add_exception_handler(InvalidOperationError, _invalid_operation)
    app.add_exception_handler(ExpectedVersionError, _stale_write)
    app.add_exception_handler(GatewayTimeout, _gateway_timeout)
    app.add_exception_handler(GatewayError, _gateway_error)
    app.add_exception_handler(DataIntegrityError, _data_integrity)
