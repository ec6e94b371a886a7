"""Helper functions for accessing context in MCP tools."""

import logging
from typing import Optional

from mcp.server.fastmcp import Context

from gdrive_mcp_server.auth.scoped_client import ScopedClientFactory
from gdrive_mcp_server.client import GoogleDriveClient

logger = logging.getLogger(__name__)


def get_client_factory(ctx: Context) -> ScopedClientFactory:
    """Return the client factory from the lifespan context.

    Raises:
        AttributeError: If the lifespan context has no client factory
    """
    lifespan_ctx = ctx.request_context.lifespan_context
    if not hasattr(lifespan_ctx, "client_factory"):
        raise AttributeError(
            f"Lifespan context does not have a 'client_factory' attribute. "
            f"Type: {type(lifespan_ctx)}"
        )
    return lifespan_ctx.client_factory


def get_client(ctx: Context, override_token: Optional[str] = None) -> GoogleDriveClient:
    """
    Build a Google Drive client for the current request.

    When ``override_token`` is given the client uses that token for this
    request only. Otherwise it uses the ambient credential currently held by
    the credential store. Each call returns a new client, which the caller
    should close (``async with``).

    Args:
        ctx: MCP request context
        override_token: Per-request access token

    Returns:
        GoogleDriveClient for this request

    Raises:
        IdentityMissingError: If GOOGLE_CLIENT_ID is not configured
        NoCredentialError: If no override is given and no token is installed

    Example:
        ```python
        @mcp.tool()
        async def my_tool(ctx: Context, token: str | None = None):
            async with get_client(ctx, token) as client:
                return await client.files.list_files()
        ```
    """
    return get_client_factory(ctx).for_request(override_token)
