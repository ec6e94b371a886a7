"""
Observability module for the Google Drive MCP Server.

This module provides:
- Prometheus metrics collection
- OpenTelemetry distributed tracing
- Structured logging with trace correlation
- Monitoring middleware for Starlette
"""

from gdrive_mcp_server.observability.logging_config import (
    get_uvicorn_logging_config,
    setup_logging,
)
from gdrive_mcp_server.observability.metrics import setup_metrics
from gdrive_mcp_server.observability.middleware import ObservabilityMiddleware
from gdrive_mcp_server.observability.tracing import setup_tracing

__all__ = [
    "setup_logging",
    "get_uvicorn_logging_config",
    "setup_metrics",
    "setup_tracing",
    "ObservabilityMiddleware",
]
