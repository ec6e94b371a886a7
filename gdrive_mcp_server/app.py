import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass
from typing import Optional

import anyio
from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route

from gdrive_mcp_server.auth.credential_store import CredentialStore
from gdrive_mcp_server.auth.ingestion_routes import create_ingestion_routes
from gdrive_mcp_server.auth.scoped_client import ScopedClientFactory
from gdrive_mcp_server.auth.token_artifact import ParseOutcome, ParseResult
from gdrive_mcp_server.auth.watcher import (
    ArtifactWatcher,
    FileArtifactSource,
    StoreUpdater,
)
from gdrive_mcp_server.config import Settings, get_settings
from gdrive_mcp_server.observability import (
    ObservabilityMiddleware,
    setup_metrics,
    setup_tracing,
)
from gdrive_mcp_server.observability.metrics import set_dependency_health
from gdrive_mcp_server.server import configure_drive_tools

logger = logging.getLogger(__name__)
HTTPXClientInstrumentor().instrument()


@dataclass
class AppContext:
    """Application context shared with every MCP session."""

    store: CredentialStore
    client_factory: ScopedClientFactory
    watcher: Optional[ArtifactWatcher] = None


def create_app_context(settings: Settings) -> AppContext:
    """Create the credential store, client factory and artifact watcher.

    The watcher is only created when ambient auth is possible; without a
    client ID every update would be rejected anyway.
    """
    store = CredentialStore()
    store.initialize(settings.identity())

    client_factory = ScopedClientFactory(
        store,
        base_url=settings.drive_api_base_url,
        timeout=settings.drive_api_timeout,
    )

    watcher = None
    if store.ambient_available:
        watcher = ArtifactWatcher(
            FileArtifactSource(
                settings.token_file, debounce_ms=settings.watch_debounce_ms
            ),
            StoreUpdater(store, source="file"),
        )
    else:
        logger.warning(
            f"Not watching token artifact {settings.token_file}: "
            "ambient authentication is unavailable"
        )

    return AppContext(store=store, client_factory=client_factory, watcher=watcher)


def apply_bootstrap_token(
    store: CredentialStore,
    token: Optional[str],
    artifact_result: Optional[ParseResult] = None,
) -> Optional[ParseResult]:
    """Install a configured startup token if the artifact is empty or absent.

    ``artifact_result`` is the outcome of the initial artifact read, None when
    the artifact did not exist. Invalid artifact content also blocks the
    bootstrap token.
    """
    if not token or not store.ambient_available:
        return None
    if artifact_result is not None and artifact_result != ParseOutcome.EMPTY:
        logger.info("Token artifact is not empty; ignoring bootstrap token")
        return None
    if store.current() is not None:
        logger.info("Token artifact provided a credential; ignoring bootstrap token")
        return None

    logger.info("Installing bootstrap token from GDRIVE_BOOTSTRAP_TOKEN")
    return StoreUpdater(store, source="bootstrap")(token.encode())


def get_app(transport: str = "streamable-http", settings: Settings | None = None):
    # Initialize observability (logging will be configured by uvicorn)
    settings = settings or get_settings()

    # Setup Prometheus metrics (always enabled by default)
    if settings.metrics_enabled:
        setup_metrics(port=settings.metrics_port)
        logger.info(
            f"Prometheus metrics enabled on dedicated port {settings.metrics_port}"
        )

    # Setup OpenTelemetry tracing (optional)
    if settings.otel_exporter_otlp_endpoint:
        setup_tracing(
            service_name=settings.otel_service_name,
            otlp_endpoint=settings.otel_exporter_otlp_endpoint,
            otlp_verify_ssl=settings.otel_exporter_verify_ssl,
            sampler=settings.otel_traces_sampler,
            sampling_rate=settings.otel_traces_sampler_arg,
        )
        logger.info(
            f"OpenTelemetry tracing enabled (endpoint: {settings.otel_exporter_otlp_endpoint})"
        )
    else:
        logger.info(
            "OpenTelemetry tracing disabled (set OTEL_EXPORTER_OTLP_ENDPOINT to enable)"
        )

    app_context = create_app_context(settings)

    @asynccontextmanager
    async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
        """FastMCP session lifespan; hands the shared context to each session."""
        logger.debug("Starting MCP session")
        yield app_context

    mcp = FastMCP(
        "Google Drive MCP",
        lifespan=app_lifespan,
        # Disable DNS rebinding protection for containerized deployments (k8s, Docker)
        transport_security=TransportSecuritySettings(
            enable_dns_rebinding_protection=False
        ),
    )
    configure_drive_tools(mcp)

    if transport == "sse":
        mcp_app = mcp.sse_app()
    elif transport in ("streamable-http", "http"):
        mcp_app = mcp.streamable_http_app()
    else:
        raise ValueError(f"Unsupported transport: {transport}")

    @asynccontextmanager
    async def starlette_lifespan(app: Starlette):
        async with anyio.create_task_group() as tg:
            watcher = app_context.watcher
            if watcher is not None:
                # Returns after the initial read of the artifact
                await tg.start(watcher.run)
                logger.info(f"Watching token artifact {watcher.source.location}")

            apply_bootstrap_token(
                app_context.store,
                settings.bootstrap_token,
                watcher.last_result if watcher is not None else None,
            )

            try:
                async with AsyncExitStack() as stack:
                    if transport != "sse":
                        await stack.enter_async_context(mcp.session_manager.run())
                    yield
            finally:
                logger.info("Stopping token artifact watcher")
                tg.cancel_scope.cancel()

    # Health check endpoints for Kubernetes probes
    def health_live(request):
        """Liveness probe endpoint.

        Returns 200 OK if the application process is running.
        """
        return JSONResponse({"status": "alive", "transport": transport})

    async def health_ready(request):
        """Readiness probe endpoint.

        Ready when an OAuth client ID is configured. A missing ambient
        credential is reported but does not fail the probe, since requests
        can still bring their own token.
        """
        checks = {}
        store = app_context.store
        watcher = app_context.watcher

        is_ready = store.ambient_available
        checks["client_configured"] = (
            "ok" if is_ready else "error: GOOGLE_CLIENT_ID not set"
        )
        checks["ambient_credential"] = (
            "present" if store.current() is not None else "absent"
        )
        if watcher is None:
            checks["token_watcher"] = "disabled"
        elif watcher.setup_error is not None:
            checks["token_watcher"] = f"error: {watcher.setup_error.reason}"
        else:
            checks["token_watcher"] = "ok"
        set_dependency_health("google_oauth_client", is_ready)

        status_code = 200 if is_ready else 503
        return JSONResponse(
            {
                "status": "ready" if is_ready else "not_ready",
                "checks": checks,
            },
            status_code=status_code,
        )

    routes = []
    routes.append(Route("/health/live", health_live, methods=["GET"]))
    routes.append(Route("/health/ready", health_ready, methods=["GET"]))
    logger.info("Health check endpoints enabled: /health/live, /health/ready")

    if settings.auth_ingestion_enabled:
        routes.extend(create_ingestion_routes(settings.token_file))
        logger.info(f"Token ingestion endpoint enabled: POST /auth -> {settings.token_file}")

    # Mount FastMCP at root last (catch-all)
    routes.append(Mount("/", app=mcp_app))

    app = Starlette(routes=routes, lifespan=starlette_lifespan)
    app.state.app_context = app_context

    # Add CORS middleware to allow browser-based clients like MCP Inspector
    app.add_middleware(
        CORSMiddleware,  # type: ignore[invalid-argument-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    # Add observability middleware (metrics + tracing)
    if settings.metrics_enabled or settings.otel_exporter_otlp_endpoint:
        app.add_middleware(ObservabilityMiddleware)  # type: ignore[invalid-argument-type]
        logger.info("Observability middleware enabled (metrics and/or tracing)")

    return app
