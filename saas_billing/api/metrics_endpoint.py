"""Prometheus scrape endpoint.

Returns the default registry in text exposition format, not JSON and
not wrapped in the response envelope.  Restrict access to it at the
ingress in production: metric labels reveal routes and traffic patterns.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
