"""MCP tools and resources for Google Drive."""

import logging
from typing import NoReturn, Optional

from httpx import HTTPStatusError, RequestError
from mcp.server.fastmcp import Context, FastMCP
from mcp.shared.exceptions import McpError
from mcp.types import INVALID_PARAMS, ErrorData

from gdrive_mcp_server.auth.errors import CredentialError
from gdrive_mcp_server.client.base import remote_error_message
from gdrive_mcp_server.context import get_client
from gdrive_mcp_server.models.files import (
    AuthStatusResponse,
    DriveFile,
    ListFilesResponse,
    ReadFileResponse,
    SearchFilesResponse,
)
from gdrive_mcp_server.observability.metrics import instrument_tool

logger = logging.getLogger(__name__)


def format_search_summary(files: list[DriveFile]) -> str:
    lines = [f"{f.name} ({f.mime_type}) - ID: {f.id}" for f in files]
    return f"Found {len(files)} files:\n" + "\n".join(lines)


def _raise_as_mcp_error(action: str, e: Exception) -> NoReturn:
    """Convert a failure of one Drive operation into an MCP error."""
    if isinstance(e, CredentialError):
        raise McpError(ErrorData(code=-1, message=str(e))) from e
    if isinstance(e, RequestError):
        raise McpError(
            ErrorData(code=-1, message=f"Network error {action}: {str(e)}")
        ) from e
    if isinstance(e, HTTPStatusError):
        raise McpError(
            ErrorData(
                code=-1,
                message=f"Failed {action}: {e.response.status_code} {remote_error_message(e)}",
            )
        ) from e
    raise e


async def _read_file(
    ctx: Context, file_id: str, token: Optional[str] = None
) -> ReadFileResponse:
    if not file_id or not file_id.strip():
        raise McpError(ErrorData(code=INVALID_PARAMS, message="File ID is required"))

    try:
        async with get_client(ctx, token) as client:
            data = await client.files.read_file(file_id)
    except HTTPStatusError as e:
        if e.response.status_code == 404:
            raise McpError(
                ErrorData(code=-1, message=f"File not found: {file_id}")
            ) from e
        _raise_as_mcp_error(f"reading file {file_id}", e)
    except (CredentialError, RequestError) as e:
        _raise_as_mcp_error(f"reading file {file_id}", e)

    return ReadFileResponse(
        file_id=data["id"],
        name=data.get("name"),
        mime_type=data["mime_type"],
        encoding=data["encoding"],
        content=data["content"],
    )


def configure_drive_tools(mcp: FastMCP):
    """Configure Google Drive MCP tools and resources."""

    @mcp.tool()
    @instrument_tool
    async def gdrive_search(
        query: str, ctx: Context, token: Optional[str] = None
    ) -> SearchFilesResponse:
        """Search for files in Google Drive by name and content.

        Args:
            query: Free text to search for
            token: Optional OAuth access token to use for this call only

        Returns:
            Matching files with a human readable summary
        """
        try:
            async with get_client(ctx, token) as client:
                files_data = await client.files.search(query)
        except (CredentialError, RequestError, HTTPStatusError) as e:
            _raise_as_mcp_error("searching files", e)

        files = [DriveFile(**f) for f in files_data]
        return SearchFilesResponse(
            query=query,
            results=files,
            total_count=len(files),
            summary=format_search_summary(files),
        )

    @mcp.tool()
    @instrument_tool
    async def gdrive_read_file(
        file_id: str, ctx: Context, token: Optional[str] = None
    ) -> ReadFileResponse:
        """Read the contents of a file from Google Drive.

        Google Docs are returned as Markdown, Sheets as CSV, Slides as plain
        text and Drawings as base64 PNG. Other text files are returned as-is
        and binary files base64 encoded.

        Args:
            file_id: ID of the file to read
            token: Optional OAuth access token to use for this call only
        """
        return await _read_file(ctx, file_id, token)

    @mcp.tool()
    @instrument_tool
    async def gdrive_list_files(
        ctx: Context, cursor: Optional[str] = None, token: Optional[str] = None
    ) -> ListFilesResponse:
        """List files in Google Drive, one page at a time.

        Args:
            cursor: Value of `next_cursor` from the previous page
            token: Optional OAuth access token to use for this call only
        """
        try:
            async with get_client(ctx, token) as client:
                data = await client.files.list_files(page_token=cursor)
        except (CredentialError, RequestError, HTTPStatusError) as e:
            _raise_as_mcp_error("listing files", e)

        files = [DriveFile(**f) for f in data["files"]]
        return ListFilesResponse(
            results=files,
            total_count=len(files),
            next_cursor=data.get("nextPageToken"),
        )

    @mcp.resource("gdrive:///{file_id}")
    async def gdrive_file_resource(file_id: str):
        """Get the content of a Google Drive file"""
        ctx: Context = mcp.get_context()
        return await _read_file(ctx, file_id)

    @mcp.resource("gdrive://auth/status")
    async def gdrive_auth_status():
        """Report whether an ambient Google Drive credential is available"""
        ctx: Context = mcp.get_context()
        lifespan_ctx = ctx.request_context.lifespan_context
        store = lifespan_ctx.store
        watcher = lifespan_ctx.watcher

        identity = store.identity
        record = store.current()
        return AuthStatusResponse(
            client_configured=identity.is_configured,
            client_secret_configured=bool(identity.client_secret),
            credential_installed=record is not None,
            refresh_token_present=bool(record and record.refresh_token),
            credential_version=store.version,
            token_artifact=watcher.source.location if watcher else None,
            watching=bool(watcher and watcher.setup_error is None),
        )
