import os

import click
import uvicorn

from gdrive_mcp_server.auth.credentials import CredentialRecord
from gdrive_mcp_server.auth.token_artifact import parse_token_artifact
from gdrive_mcp_server.config import DEFAULT_TOKEN_FILE, get_settings
from gdrive_mcp_server.observability import get_uvicorn_logging_config

from .app import get_app

LOG_LEVELS = ["critical", "error", "warning", "info", "debug", "trace"]


def _uvicorn_log_config() -> dict:
    settings = get_settings()
    return get_uvicorn_logging_config(
        log_format=settings.log_format,
        log_level=settings.log_level,
        include_trace_context=settings.log_include_trace_context,
    )


@click.command()
@click.option(
    "--host", "-h", default="127.0.0.1", show_default=True, help="Server host"
)
@click.option(
    "--port", "-p", type=int, default=8000, show_default=True, help="Server port"
)
@click.option(
    "--log-level",
    "-l",
    default="info",
    show_default=True,
    type=click.Choice(LOG_LEVELS),
    help="Logging level",
)
@click.option(
    "--transport",
    "-t",
    default="streamable-http",
    show_default=True,
    type=click.Choice(["streamable-http", "http", "sse"]),
    help="MCP transport protocol",
)
@click.option(
    "--client-id",
    envvar="GOOGLE_CLIENT_ID",
    help="Google OAuth client ID (can also use GOOGLE_CLIENT_ID env var)",
)
@click.option(
    "--client-secret",
    envvar="GOOGLE_CLIENT_SECRET",
    help="Google OAuth client secret (can also use GOOGLE_CLIENT_SECRET env var)",
)
@click.option(
    "--token-file",
    envvar="GDRIVE_TOKEN_FILE",
    default=DEFAULT_TOKEN_FILE,
    show_default=True,
    help="Token artifact to watch for credential updates (can also use GDRIVE_TOKEN_FILE env var)",
)
@click.option(
    "--auth-ingestion/--no-auth-ingestion",
    default=None,
    help="Serve POST /auth for token delivery on the main server. Enabled by default.",
)
def run(
    host: str,
    port: int,
    log_level: str,
    transport: str,
    client_id: str | None,
    client_secret: str | None,
    token_file: str,
    auth_ingestion: bool | None,
):
    """
    Run the Google Drive MCP server.

    \b
    Credentials:
      - Ambient: written to the token artifact (directly or via POST /auth)
        and picked up without a restart
      - Per request: pass `token` to a tool call

    \b
    Examples:
      $ export GOOGLE_CLIENT_ID=xxx.apps.googleusercontent.com
      $ export GOOGLE_CLIENT_SECRET=yyy
      $ gdrive-mcp-server run --host 0.0.0.0 --port 8000

      # Deliver a token
      $ curl -X POST localhost:8000/auth -d '{"access_token": "ya29..."}'
    """
    # Set env vars from CLI options if provided
    if client_id:
        os.environ["GOOGLE_CLIENT_ID"] = client_id
    if client_secret:
        os.environ["GOOGLE_CLIENT_SECRET"] = client_secret
    if token_file:
        os.environ["GDRIVE_TOKEN_FILE"] = token_file
    if auth_ingestion is not None:
        os.environ["AUTH_INGESTION_ENABLED"] = "true" if auth_ingestion else "false"

    if not os.getenv("GOOGLE_CLIENT_ID"):
        click.echo(
            "Warning: GOOGLE_CLIENT_ID is not set. Drive calls will fail until "
            "the server is restarted with a client ID.",
            err=True,
        )

    app = get_app(transport=transport)

    uvicorn.run(
        app=app,
        host=host,
        port=port,
        log_level=log_level,
        log_config=_uvicorn_log_config(),
    )


@click.command("auth-handler")
@click.option(
    "--host", "-h", default="127.0.0.1", show_default=True, help="Server host"
)
@click.option(
    "--port", "-p", type=int, default=8001, show_default=True, help="Server port"
)
@click.option(
    "--log-level",
    "-l",
    default="info",
    show_default=True,
    type=click.Choice(LOG_LEVELS),
    help="Logging level",
)
@click.option(
    "--token-file",
    envvar="GDRIVE_TOKEN_FILE",
    default=DEFAULT_TOKEN_FILE,
    show_default=True,
    help="File the received tokens are written to (can also use GDRIVE_TOKEN_FILE env var)",
)
def auth_handler(host: str, port: int, log_level: str, token_file: str):
    """
    Run the token ingestion endpoint on its own.

    Accepts POST /auth with a JSON body and writes it to the token file,
    where a running MCP server picks it up.
    """
    from gdrive_mcp_server.auth.ingestion_routes import create_ingestion_app

    uvicorn.run(
        app=create_ingestion_app(token_file),
        host=host,
        port=port,
        log_level=log_level,
        log_config=_uvicorn_log_config(),
    )


@click.group()
def token():
    """Token artifact inspection commands."""
    pass


@token.command("parse")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def parse(path: str):
    """Parse a token artifact and report what it contains.

    Token values are never printed, only a short fingerprint.
    """
    with open(path, "rb") as f:
        result = parse_token_artifact(f.read())

    if isinstance(result, CredentialRecord):
        click.echo(click.style("✓ Valid credential", fg="green"))
        click.echo(f"  Access token: {result.fingerprint}")
        click.echo(
            f"  Refresh token: {'present' if result.refresh_token else 'absent'}"
        )
    elif result.is_empty:
        click.echo("Artifact is empty; it would be ignored")
    else:
        click.echo(click.style(f"✗ Invalid artifact: {result.reason}", fg="red"), err=True)
        raise click.ClickException(result.reason or "invalid token artifact")


# Create CLI group with subcommands
cli = click.Group()
cli.add_command(run)
cli.add_command(auth_handler)
cli.add_command(token)


if __name__ == "__main__":
    cli()
