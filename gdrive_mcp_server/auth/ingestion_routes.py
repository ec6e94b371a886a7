"""HTTP endpoint that receives new tokens and writes them to the token artifact.

An external OAuth flow POSTs the token JSON to ``/auth``. The body is
written verbatim to the artifact, where the artifact watcher picks it up.
The endpoint never touches the credential store directly.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

import anyio
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from gdrive_mcp_server.observability.metrics import record_credential_update

logger = logging.getLogger(__name__)


def write_artifact(path: Path, body: bytes) -> None:
    """Replace the artifact content in one step.

    The body goes to a temporary file in the same directory which is then
    renamed over the artifact, so a reader never sees a partial write.
    """
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(body)
        os.replace(tmp_name, path)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def create_auth_endpoint(token_file: str | Path):
    """Create the ``POST /auth`` handler bound to a token artifact path."""
    path = Path(token_file)

    async def receive_token(request: Request) -> PlainTextResponse:
        body = await request.body()
        logger.info(f"Received token payload ({len(body)} bytes)")

        try:
            json.loads(body)
        except ValueError:
            logger.error("Received token payload is not valid JSON")
            record_credential_update("ingestion", "invalid")
            return PlainTextResponse(
                "Bad Request: Invalid JSON payload", status_code=400
            )

        try:
            await anyio.to_thread.run_sync(write_artifact, path, body)
        except OSError as e:
            logger.error(f"Error writing token to {path}: {e}")
            record_credential_update("ingestion", "write_failed")
            return PlainTextResponse("Internal Server Error", status_code=500)

        logger.info(f"Token payload successfully written to {path}")
        record_credential_update("ingestion", "received")
        return PlainTextResponse("Token received", status_code=200)

    return receive_token


def create_ingestion_routes(token_file: str | Path) -> list[Route]:
    return [Route("/auth", create_auth_endpoint(token_file), methods=["POST"])]


def create_ingestion_app(token_file: str | Path) -> Starlette:
    """Standalone ingestion app, for running the endpoint in its own process."""
    logger.info(f"Auth ingestion endpoint writes tokens to {token_file}")
    return Starlette(routes=create_ingestion_routes(token_file))
