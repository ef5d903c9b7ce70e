"""Exception handlers: every failure leaves the service as an error envelope.

Routes and services raise ``AppError`` subclasses; the handlers here turn
them (and FastAPI's own validation and HTTP errors) into the one error
shape defined in ``saas_billing.api.envelope``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from saas_billing.api import envelope
from saas_billing.core.errors import AppError, DependencyError
from saas_billing.core.logging import request_id_var

logger = logging.getLogger(__name__)

# Failures of a backing service rather than of the request.
DATA_ACCESS_ERRORS: tuple[type[BaseException], ...] = (
    SQLAlchemyError,
    redis.RedisError,
    OSError,
    TimeoutError,
)

_HTTP_STATUS_CODES = {
    400: "INVALID_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "RATE_LIMIT_EXCEEDED",
}


@contextmanager
def store_errors(code: str, message: str) -> Iterator[None]:
    """Report data-access failures as a DependencyError with the endpoint's code.

    Domain errors pass through untouched.  Driver text stays in the log,
    never in the response.
    """
    try:
        yield
    except DATA_ACCESS_ERRORS as e:
        logger.error("%s: %s", code, e, exc_info=True)
        raise DependencyError(message, code=code) from e


def error_response(
    status_code: int,
    code: str,
    message: str,
    *,
    details: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    request_id = request_id_var.get("-")
    body = envelope.error(
        code,
        message,
        details=details,
        request_id=request_id if request_id != "-" else None,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


async def _app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.code, exc.message)
    return error_response(
        exc.status_code,
        exc.code,
        exc.message,
        details=exc.details,
        headers=exc.headers,
    )


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    return error_response(400, "INVALID_REQUEST", "Invalid request", details=details)


async def _http_error_handler(
    _request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = _HTTP_STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
    return error_response(
        exc.status_code,
        code,
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", exc_info=exc)
    return error_response(500, "INTERNAL_SERVER_ERROR", "An unexpected error occurred")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)
