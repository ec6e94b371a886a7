"""
Starlette middleware that records RED metrics and a trace span for every
HTTP request served by the MCP app and the token ingestion endpoint.
"""

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from gdrive_mcp_server.observability.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)
from gdrive_mcp_server.observability.tracing import trace_operation

logger = logging.getLogger(__name__)

# (path prefix, metrics label); first match wins
ENDPOINT_LABELS = (
    ("/health/", "/health/*"),
    ("/auth", "/auth"),
    ("/mcp", "/mcp"),
    ("/sse", "/sse"),
    ("/messages", "/messages"),
)

SLOW_REQUEST_SECONDS = 1.0


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Instrument HTTP requests with Prometheus metrics and OpenTelemetry spans."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        method = request.method
        endpoint = self._get_endpoint_label(request.url.path)
        in_progress = http_requests_in_progress.labels(method=method, endpoint=endpoint)

        in_progress.inc()
        started = time.perf_counter()
        status_code = 500
        try:
            with trace_operation(
                f"HTTP {method} {endpoint}",
                attributes={
                    "http.method": method,
                    "http.route": endpoint,
                    "http.scheme": request.url.scheme,
                },
            ) as span:
                response = await call_next(request)
                status_code = response.status_code
                if span is not None:
                    span.set_attribute("http.status_code", status_code)
                return response
        except Exception:
            logger.error(f"Request failed: {method} {endpoint}", exc_info=True)
            raise
        finally:
            in_progress.dec()
            self._record_request_metrics(
                method, endpoint, status_code, time.perf_counter() - started
            )

    def _get_endpoint_label(self, path: str) -> str:
        """Normalize a request path into a low-cardinality metrics label.

        Everything else, including the MCP resource paths, collapses into
        ``other``.
        """
        for prefix, label in ENDPOINT_LABELS:
            if path == prefix.rstrip("/") or path.startswith(prefix.rstrip("/") + "/"):
                return label
        return "other"

    def _record_request_metrics(
        self,
        method: str,
        endpoint: str,
        status_code: int,
        duration: float,
    ) -> None:
        http_requests_total.labels(
            method=method, endpoint=endpoint, status_code=str(status_code)
        ).inc()
        http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
            duration
        )

        if duration > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request: {method} {endpoint} took {duration:.3f}s",
                extra={"status_code": status_code, "duration_seconds": duration},
            )
