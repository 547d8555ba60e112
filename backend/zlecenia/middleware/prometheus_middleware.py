# backend/zlecenia/middleware/prometheus_middleware.py
"""
Prometheus middleware for HTTP request metrics.

WebSocket traffic never reaches BaseHTTPMiddleware; chat has its own metrics.
"""

import re
import time
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..monitoring.prometheus_metrics import prometheus_metrics

METRICS_PATH = "/metrics"

_ID_SEGMENT = re.compile(r"^([0-9]+|[0-9a-fA-F]{8}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{12})$")


def normalize_path(raw_path: str) -> str:
    """Collapse numeric and UUID segments so the endpoint label stays low-cardinality."""
    return "/".join(":id" if _ID_SEGMENT.match(segment) else segment for segment in raw_path.split("/"))


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to collect Prometheus metrics for HTTP requests."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        # Skip the metrics endpoint itself
        if request.url.path == METRICS_PATH:
            return await call_next(request)

        path = normalize_path(request.url.path)
        start_time = time.time()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            prometheus_metrics.record_http_request(
                method=request.method,
                endpoint=path,
                duration=time.time() - start_time,
                status_code=status_code,
            )
