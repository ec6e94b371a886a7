import logging
import os
from dataclasses import dataclass
from typing import Optional

from gdrive_mcp_server.auth.credentials import ApplicationIdentity

DEFAULT_TOKEN_FILE = "/tmp/auth_token.txt"
DEFAULT_DRIVE_API_BASE_URL = "https://www.googleapis.com/drive/v3"
OTEL_SAMPLERS = (
    "always_on",
    "always_off",
    "traceidratio",
    "parentbased_always_on",
    "parentbased_always_off",
    "parentbased_traceidratio",
)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Settings:
    """Application settings from environment variables."""

    # OAuth application identity
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None

    # Token artifact and ingestion
    token_file: str = DEFAULT_TOKEN_FILE
    bootstrap_token: Optional[str] = None  # Used only if the artifact is empty
    auth_ingestion_enabled: bool = True
    watch_debounce_ms: int = 200

    # Drive API
    drive_api_base_url: str = DEFAULT_DRIVE_API_BASE_URL
    drive_api_timeout: float = 30.0

    # Observability
    metrics_enabled: bool = True
    metrics_port: int = 9090
    otel_exporter_otlp_endpoint: Optional[str] = None
    otel_exporter_verify_ssl: bool = False
    otel_service_name: str = "gdrive-mcp-server"
    otel_traces_sampler: str = "always_on"
    otel_traces_sampler_arg: float = 1.0
    log_format: str = "text"  # "json" or "text"
    log_level: str = "INFO"
    log_include_trace_context: bool = True

    def __post_init__(self):
        """Validate settings."""
        logger = logging.getLogger(__name__)

        if not self.token_file:
            raise ValueError("GDRIVE_TOKEN_FILE cannot be empty.")

        if self.drive_api_timeout <= 0:
            raise ValueError(
                f"GDRIVE_API_TIMEOUT ({self.drive_api_timeout}) must be positive."
            )

        if self.watch_debounce_ms < 0:
            raise ValueError(
                f"GDRIVE_WATCH_DEBOUNCE_MS ({self.watch_debounce_ms}) cannot be negative."
            )

        if self.otel_traces_sampler not in OTEL_SAMPLERS:
            raise ValueError(
                f"OTEL_TRACES_SAMPLER must be one of {', '.join(OTEL_SAMPLERS)}, "
                f"got '{self.otel_traces_sampler}'."
            )

        if not 0.0 <= self.otel_traces_sampler_arg <= 1.0:
            raise ValueError(
                f"OTEL_TRACES_SAMPLER_ARG ({self.otel_traces_sampler_arg}) must be between 0 and 1."
            )

        if self.log_format not in ("text", "json"):
            raise ValueError(
                f"LOG_FORMAT must be 'text' or 'json', got '{self.log_format}'."
            )

        if self.bootstrap_token and not self.google_client_id:
            logger.warning(
                "GDRIVE_BOOTSTRAP_TOKEN is set but GOOGLE_CLIENT_ID is not. "
                "The bootstrap token will be ignored."
            )

    def identity(self) -> ApplicationIdentity:
        """The OAuth application identity, with blank values treated as unset."""
        return ApplicationIdentity(
            client_id=self.google_client_id or None,
            client_secret=self.google_client_secret or None,
        )


def get_settings() -> Settings:
    """Get application settings from environment variables.

    Returns:
        Settings object with configuration values
    """
    return Settings(
        google_client_id=os.getenv("GOOGLE_CLIENT_ID"),
        google_client_secret=os.getenv("GOOGLE_CLIENT_SECRET"),
        token_file=os.getenv("GDRIVE_TOKEN_FILE", DEFAULT_TOKEN_FILE),
        bootstrap_token=os.getenv("GDRIVE_BOOTSTRAP_TOKEN"),
        auth_ingestion_enabled=_env_bool("AUTH_INGESTION_ENABLED", "true"),
        watch_debounce_ms=int(os.getenv("GDRIVE_WATCH_DEBOUNCE_MS", "200")),
        drive_api_base_url=os.getenv(
            "GDRIVE_API_BASE_URL", DEFAULT_DRIVE_API_BASE_URL
        ),
        drive_api_timeout=float(os.getenv("GDRIVE_API_TIMEOUT", "30")),
        metrics_enabled=_env_bool("METRICS_ENABLED", "true"),
        metrics_port=int(os.getenv("METRICS_PORT", "9090")),
        otel_exporter_otlp_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"),
        otel_exporter_verify_ssl=_env_bool("OTEL_EXPORTER_VERIFY_SSL", "false"),
        otel_service_name=os.getenv("OTEL_SERVICE_NAME", "gdrive-mcp-server"),
        otel_traces_sampler=os.getenv("OTEL_TRACES_SAMPLER", "always_on").lower(),
        otel_traces_sampler_arg=float(os.getenv("OTEL_TRACES_SAMPLER_ARG", "1.0")),
        log_format=os.getenv("LOG_FORMAT", "text").lower(),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_include_trace_context=_env_bool("LOG_INCLUDE_TRACE_CONTEXT", "true"),
    )
