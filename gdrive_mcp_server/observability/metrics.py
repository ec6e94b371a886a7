"""
Prometheus metrics for the Google Drive MCP Server.

Metrics are organized by category:

- HTTP Server Metrics (RED: Rate, Errors, Duration)
- MCP Tool Metrics (per-tool invocation tracking)
- Google Drive API Client Metrics
- Credential Lifecycle Metrics
- External Dependency Health Metrics
"""

import functools
import logging
import time

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from gdrive_mcp_server.observability import tracing

logger = logging.getLogger(__name__)

# =============================================================================
# HTTP Server Metrics (RED + System)
# =============================================================================

http_requests_total = Counter(
    "mcp_http_requests_total",
    "Total HTTP requests received",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "mcp_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_in_progress = Gauge(
    "mcp_http_requests_in_progress",
    "Number of HTTP requests currently being processed",
    ["method", "endpoint"],
)

# =============================================================================
# MCP Tool Metrics
# =============================================================================

mcp_tool_calls_total = Counter(
    "mcp_tool_calls_total",
    "Total MCP tool invocations",
    ["tool_name", "status"],  # status: success | error
)

mcp_tool_duration_seconds = Histogram(
    "mcp_tool_duration_seconds",
    "MCP tool execution duration in seconds",
    ["tool_name"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

mcp_tool_errors_total = Counter(
    "mcp_tool_errors_total",
    "Total MCP tool errors by type",
    ["tool_name", "error_type"],
)

# =============================================================================
# Google Drive API Client Metrics
# =============================================================================

drive_api_requests_total = Counter(
    "mcp_drive_api_requests_total",
    "Total Google Drive API requests",
    ["operation", "method", "status_code"],
)

drive_api_duration_seconds = Histogram(
    "mcp_drive_api_duration_seconds",
    "Google Drive API request duration in seconds",
    ["operation", "method"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

drive_api_retries_total = Counter(
    "mcp_drive_api_retries_total",
    "Total Google Drive API retries",
    ["operation", "reason"],
)

# =============================================================================
# Credential Lifecycle Metrics
# =============================================================================

credential_updates_total = Counter(
    "mcp_credential_updates_total",
    "Ambient credential update attempts",
    ["source", "outcome"],  # source: file | bootstrap | ingestion
)

scoped_clients_total = Counter(
    "mcp_scoped_clients_total",
    "Authenticated Drive clients built per request",
    ["mode", "status"],  # mode: ambient | override
)

ambient_credential_present = Gauge(
    "mcp_ambient_credential_present",
    "Whether an ambient credential is installed (1=yes, 0=no)",
)

# =============================================================================
# External Dependency Health Metrics
# =============================================================================

dependency_health = Gauge(
    "mcp_dependency_health",
    "External dependency health status (1=up, 0=down)",
    ["dependency"],
)

# =============================================================================
# Metrics Setup and HTTP Handler
# =============================================================================


def setup_metrics(port: int = 9090) -> None:
    """
    Initialize Prometheus metrics collection and start HTTP server.

    Starts a dedicated HTTP server on the specified port to serve metrics.
    This server runs in a separate thread and is isolated from the main application.

    Args:
        port: Port to serve metrics on (default: 9090)
    """
    try:
        start_http_server(port)
        logger.info(f"Prometheus metrics server started on port {port}")
    except OSError as e:
        if "Address already in use" in str(e):
            logger.warning(
                f"Metrics port {port} already in use (metrics server likely already running)"
            )
        else:
            logger.error(f"Failed to start metrics server on port {port}: {e}")
            raise


# =============================================================================
# Convenience Functions for Common Metric Updates
# =============================================================================


def record_tool_call(tool_name: str, duration: float, status: str = "success") -> None:
    """
    Record metrics for an MCP tool call.

    Args:
        tool_name: Name of the MCP tool
        duration: Execution duration in seconds
        status: "success" or "error"
    """
    mcp_tool_calls_total.labels(tool_name=tool_name, status=status).inc()
    mcp_tool_duration_seconds.labels(tool_name=tool_name).observe(duration)


def record_tool_error(tool_name: str, error_type: str) -> None:
    """
    Record an MCP tool error.

    Args:
        tool_name: Name of the MCP tool
        error_type: Type of error (e.g., "HTTPStatusError", "NoCredentialError")
    """
    mcp_tool_errors_total.labels(tool_name=tool_name, error_type=error_type).inc()


def record_drive_api_call(
    operation: str,
    method: str,
    status_code: int,
    duration: float,
) -> None:
    """
    Record metrics for a Google Drive API call.

    Args:
        operation: Client operation (list, search, metadata, export, download)
        method: HTTP method
        status_code: HTTP status code (0 for connection errors)
        duration: Request duration in seconds
    """
    drive_api_requests_total.labels(
        operation=operation, method=method, status_code=str(status_code)
    ).inc()
    drive_api_duration_seconds.labels(operation=operation, method=method).observe(
        duration
    )


def record_drive_api_retry(operation: str, reason: str) -> None:
    drive_api_retries_total.labels(operation=operation, reason=reason).inc()


def record_credential_update(source: str, outcome: str) -> None:
    """
    Record an attempt to update the ambient credential.

    Args:
        source: Where the content came from ("file", "bootstrap" or "ingestion")
        outcome: Result, e.g. "applied", "empty", "invalid" or "rejected"
    """
    credential_updates_total.labels(source=source, outcome=outcome).inc()
    if outcome == "applied":
        ambient_credential_present.set(1)


def record_scoped_client(mode: str, status: str = "success") -> None:
    scoped_clients_total.labels(mode=mode, status=status).inc()


def set_dependency_health(dependency: str, is_healthy: bool) -> None:
    dependency_health.labels(dependency=dependency).set(1 if is_healthy else 0)


def instrument_tool(func):
    """Decorator recording Prometheus metrics and a trace span for an MCP tool.

    Tool arguments are attached to the span with credentials removed.
    """
    tool_name = func.__name__

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        safe_args = {
            k: v
            for k, v in kwargs.items()
            if k not in tracing.SENSITIVE_ARGS and k != "ctx"
        }
        attributes = {"mcp.tool.name": tool_name}
        if safe_args:
            attributes["mcp.tool.args"] = str(safe_args)[:500]

        start_time = time.time()
        try:
            with tracing.trace_operation(
                f"mcp.tool.{tool_name}",
                attributes=attributes,
                record_exception=True,
            ):
                result = await func(*args, **kwargs)
        except Exception as e:
            record_tool_call(tool_name, time.time() - start_time, status="error")
            record_tool_error(tool_name, type(e).__name__)
            raise

        record_tool_call(tool_name, time.time() - start_time, status="success")
        return result

    return wrapper
