"""
Request timing middleware for API metrics.

Measures total request duration, records it against the route template in
the application's MetricsRecorder, logs slow requests and adds an
X-Response-Time header.
"""

import time
from typing import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from onlinebank.core.perf_metrics import SLOW_REQUEST_THRESHOLD_MS

logger = structlog.get_logger(__name__)


# Only the client API is measured; health probes and docs are noise
MEASURED_PREFIX = "/api/"


def _normalize_endpoint(path: str) -> str:
    """
    Normalize a raw path for grouping when no route template is known.

    Replaces numeric IDs and UUIDs with placeholders:
    - /api/clients/123 -> /api/clients/{id}
    - /api/clients/unique/<uuid> -> /api/clients/unique/{uuid}
    """
    parts = path.rstrip("/").split("/")
    normalized_parts = []

    for part in parts:
        if part.isdigit():
            normalized_parts.append("{id}")
        elif len(part) == 36 and part.count("-") == 4:
            normalized_parts.append("{uuid}")
        else:
            normalized_parts.append(part)

    return "/".join(normalized_parts) or "/"


def route_prefix(prefix: str) -> Callable[[Request], None]:
    """
    Router dependency recording the prefix the router is mounted under.

    The matched route only knows its path inside the router
    (/{client_id}), so the mount prefix is kept on request.state for
    endpoint_name().

    Usage:
        app.include_router(router, prefix="/api/clients",
                           dependencies=[Depends(route_prefix("/api/clients"))])
    """

    def _record_prefix(request: Request) -> None:
        request.state.route_prefix = prefix

    return _record_prefix


def endpoint_name(request: Request) -> str:
    """Full route template the request matched (e.g. /api/clients/{client_id})."""
    route = request.scope.get("route")
    route_path = getattr(route, "path", None)
    if route_path is None:
        return _normalize_endpoint(request.url.path)

    prefix = getattr(request.state, "route_prefix", "")
    if prefix and not route_path.startswith(prefix):
        route_path = prefix.rstrip("/") + route_path
    return route_path.rstrip("/") or "/"


class TimingMiddleware(BaseHTTPMiddleware):
    """
    Times API requests and records them in ``app.state.metrics``.

    Requests that raise still count: the latency up to the failure is
    recorded before the exception propagates to the error handlers.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if not path.startswith(MEASURED_PREFIX):
            return await call_next(request)

        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            duration_ms = (time.perf_counter() - start_time) * 1000
            response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
            return response
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            recorder = getattr(request.app.state, "metrics", None)
            if recorder is not None:
                recorder.record(endpoint_name(request), duration_ms)

            if duration_ms > SLOW_REQUEST_THRESHOLD_MS:
                logger.warning(
                    "Slow request",
                    method=request.method,
                    path=path,
                    duration_ms=round(duration_ms, 2),
                    status_code=status_code,
                )


__all__ = ["TimingMiddleware", "endpoint_name", "route_prefix"]
