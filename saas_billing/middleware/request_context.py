"""Request context middleware: request id, timing and the completion log line.

The request id is taken from the client's X-Request-ID header when
present and generated otherwise.  It goes into ``request_id_var`` so every
log line emitted while handling the request, and every error envelope,
carries it; it is echoed back on the response for client correlation.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from saas_billing.api.errors import error_response
from saas_billing.core.logging import request_id_var, user_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request_id_var.set(req_id)
        user_id_var.set(None)

        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            # The 500 envelope is built here, inside SecurityHeadersMiddleware.
            logger.exception("Unhandled error  %s %s", request.method, request.url.path)
            response = error_response(
                500, "INTERNAL_SERVER_ERROR", "An unexpected error occurred"
            )
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        logger.info(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers[REQUEST_ID_HEADER] = req_id
        return response
