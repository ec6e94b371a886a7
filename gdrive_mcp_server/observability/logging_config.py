"""
Logging configuration for the Google Drive MCP Server.

JSON output uses python-json-logger, text output the stdlib formatter. Both
can carry the OpenTelemetry trace context, and both pass through
:class:`TokenRedactionFilter` so an access token that slips into a message
(for example an httpx debug line with an ``Authorization`` header) is masked.
"""

import logging
import re
import sys
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from gdrive_mcp_server.observability.tracing import get_trace_context

TEXT_FORMAT = "%(levelname)s [%(asctime)s] %(name)s - %(message)s"
JSON_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"

_MODULE = "gdrive_mcp_server.observability.logging_config"

# Third-party loggers kept at WARNING regardless of LOG_LEVEL
QUIET_LOGGERS = ("httpx", "httpcore", "watchfiles", "opentelemetry")

# Paths probed by Kubernetes and Prometheus
PROBE_PATHS = ("/health/live", "/health/ready", "/metrics")

# Bearer headers and Google OAuth token shapes (ya29 access, 1// refresh)
_TOKEN_PATTERN = re.compile(
    r"(Bearer\s+)[A-Za-z0-9._~+/=-]+|\bya29\.[A-Za-z0-9._-]+|\b1//[A-Za-z0-9._-]+"
)


def redact_tokens(message: str) -> str:
    def _mask(match: re.Match) -> str:
        return f"{match.group(1)}[REDACTED]" if match.group(1) else "[REDACTED]"

    return _TOKEN_PATTERN.sub(_mask, message)


class TokenRedactionFilter(logging.Filter):
    """Mask OAuth tokens in log messages before they are formatted."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_tokens(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class HealthCheckFilter(logging.Filter):
    """Drop uvicorn access log lines for health and metrics probes."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        return not any(path in message for path in PROBE_PATHS)


class TraceContextFormatter(JsonFormatter):
    """
    JSON formatter that injects OpenTelemetry trace context into log records.
    """

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        trace_context = get_trace_context()
        if trace_context:
            log_record["trace_id"] = trace_context.get("trace_id")
            log_record["span_id"] = trace_context.get("span_id")

        log_record["timestamp"] = self.formatTime(record)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["message"] = record.getMessage()

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


class TraceContextTextFormatter(logging.Formatter):
    """
    Text formatter that includes OpenTelemetry trace context.

    Format: LEVEL [timestamp] logger - message [trace_id=xxx span_id=yyy]
    """

    def format(self, record: logging.LogRecord) -> str:
        base_message = super().format(record)

        trace_context = get_trace_context()
        if trace_context:
            trace_id = trace_context.get("trace_id", "")
            span_id = trace_context.get("span_id", "")
            return f"{base_message} [trace_id={trace_id} span_id={span_id}]"

        return base_message


def _build_formatter(log_format: str, include_trace_context: bool) -> logging.Formatter:
    if log_format.lower() == "json":
        if include_trace_context:
            return TraceContextFormatter(JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
        return JsonFormatter(JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    if include_trace_context:
        return TraceContextTextFormatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    return logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def setup_logging(
    log_format: str = "text",
    log_level: str = "INFO",
    include_trace_context: bool = True,
    stream=None,
) -> None:
    """
    Configure root logging for processes not started through uvicorn.

    Args:
        log_format: "json" or "text"
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        include_trace_context: Whether to include trace context in logs
        stream: Output stream, defaults to stderr
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(_build_formatter(log_format, include_trace_context))
    handler.addFilter(TokenRedactionFilter())
    root_logger.addHandler(handler)

    configure_component_loggers(log_level)

    root_logger.info(
        f"Logging configured: format={log_format}, level={log_level}, "
        f"trace_context={include_trace_context}"
    )


def configure_component_loggers(default_level: str = "INFO") -> None:
    """Apply ``default_level`` to this package and quiet the HTTP internals."""
    level = getattr(logging, default_level.upper(), logging.INFO)
    logging.getLogger("gdrive_mcp_server").setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _formatter_class(log_format: str, include_trace_context: bool) -> str:
    if log_format.lower() == "json":
        if include_trace_context:
            return f"{_MODULE}.TraceContextFormatter"
        return "pythonjsonlogger.json.JsonFormatter"
    if include_trace_context:
        return f"{_MODULE}.TraceContextTextFormatter"
    return "logging.Formatter"


def get_uvicorn_logging_config(
    log_format: str = "text",
    log_level: str = "INFO",
    include_trace_context: bool = True,
) -> dict:
    """
    Get uvicorn-compatible logging configuration.

    Args:
        log_format: "json" or "text"
        log_level: Minimum log level
        include_trace_context: Whether to include trace IDs in logs

    Returns:
        Logging config dict compatible with uvicorn's log_config parameter
    """
    is_json = log_format.lower() == "json"

    def stream_handler(*filters: str) -> dict:
        return {
            "formatter": "default",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "filters": list(filters),
        }

    loggers: dict[str, dict] = {
        "": {"handlers": ["default"], "level": log_level.upper()},
    }
    for name in ("uvicorn", "uvicorn.error"):
        loggers[name] = {"handlers": ["default"], "level": "INFO", "propagate": False}
    loggers["uvicorn.access"] = {
        "handlers": ["access"],
        "level": "INFO",
        "propagate": False,
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"handlers": ["default"], "level": "WARNING", "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "()": _formatter_class(log_format, include_trace_context),
                "format": JSON_FORMAT if is_json else TEXT_FORMAT,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "filters": {
            "token_redaction": {"()": f"{_MODULE}.TokenRedactionFilter"},
            "health_check_filter": {"()": f"{_MODULE}.HealthCheckFilter"},
        },
        "handlers": {
            "default": stream_handler("token_redaction"),
            "access": stream_handler("token_redaction", "health_check_filter"),
        },
        "loggers": loggers,
    }
