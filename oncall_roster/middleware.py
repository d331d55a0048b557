# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
HTTP middleware: request-id propagation and Prometheus request metrics.
"""

import re
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from oncall_roster.core.logging import request_id_var
from oncall_roster.metrics.prometheus import HTTP_ERRORS, REQUEST_COUNT, REQUEST_LATENCY

# Path segments that identify a resource rather than a route.
_ID_SEGMENTS = (
    (re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"), "{id}"),
    (re.compile(r"^\d{4}-\d{2}-\d{2}$"), "{week_start}"),
)
_ROUTE_SEGMENTS = frozenset({
    "api", "v1", "rosters", "members", "overrides", "schedule", "generate",
    "lock", "oncall", "coverage", "export.ics",
})

UNMETERED_PATHS = frozenset({
    "/health", "/health/ready", "/metrics", "/openapi.json", "/docs", "/redoc",
})


def normalize_path(path: str) -> str:
    """Route template for a concrete path, e.g. ``/api/v1/rosters/{id}/schedule/{week_start}``."""
    segments = [s for s in path.split("/") if s]
    if not segments:
        return "/"
    templated = []
    for segment in segments:
        if segment in _ROUTE_SEGMENTS:
            templated.append(segment)
            continue
        for pattern, placeholder in _ID_SEGMENTS:
            if pattern.match(segment):
                templated.append(placeholder)
                break
        else:
            templated.append("{param}")
    return "/" + "/".join(templated)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Accept or mint X-Request-ID; expose it on request.state and to the log formatter."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.url.path in UNMETERED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        endpoint = normalize_path(request.url.path)
        status = str(response.status_code)
        REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status=status).inc()
        REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(elapsed)
        if response.status_code >= 400:
            HTTP_ERRORS.labels(method=request.method, endpoint=endpoint, status=status).inc()
        return response
