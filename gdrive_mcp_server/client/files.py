"""Google Drive v3 files API: listing, full-text search and content reads."""

import base64
import logging
from typing import Any, Optional

from .base import BaseDriveClient

logger = logging.getLogger(__name__)

GOOGLE_APPS_PREFIX = "application/vnd.google-apps"

# Export formats for Google Workspace documents, which cannot be downloaded as-is
EXPORT_MIME_TYPES = {
    "application/vnd.google-apps.document": "text/markdown",
    "application/vnd.google-apps.spreadsheet": "text/csv",
    "application/vnd.google-apps.presentation": "text/plain",
    "application/vnd.google-apps.drawing": "image/png",
}
DEFAULT_EXPORT_MIME_TYPE = "text/plain"
DEFAULT_MIME_TYPE = "application/octet-stream"

LIST_FIELDS = "nextPageToken, files(id, name, mimeType)"
SEARCH_FIELDS = "files(id, name, mimeType, modifiedTime, size)"


def escape_query(query: str) -> str:
    """Escape a user string for use inside a quoted Drive query literal."""
    return query.replace("\\", "\\\\").replace("'", "\\'")


def is_text_mime_type(mime_type: str) -> bool:
    return mime_type.startswith("text/") or mime_type == "application/json"


class DriveFilesClient(BaseDriveClient):
    """Client for the Drive ``files`` collection."""

    async def list_files(
        self, page_token: Optional[str] = None, page_size: int = 10
    ) -> dict[str, Any]:
        """List files visible to the credential.

        Args:
            page_token: Cursor returned by a previous call
            page_size: Maximum number of files per page

        Returns:
            Dict with ``files`` (id, name, mimeType) and ``nextPageToken``
        """
        params: dict[str, Any] = {"pageSize": page_size, "fields": LIST_FIELDS}
        if page_token:
            params["pageToken"] = page_token

        response = await self._make_request(
            "GET", "/files", params=params, operation="list"
        )
        data = response.json()
        files = data.get("files") or []
        logger.info(f"Listed {len(files)} files")
        return {"files": files, "nextPageToken": data.get("nextPageToken")}

    async def search(self, query: str, page_size: int = 10) -> list[dict[str, Any]]:
        """Full-text search across file names and content.

        Args:
            query: Free text; quotes and backslashes are escaped
            page_size: Maximum number of results

        Returns:
            List of file dicts with id, name, mimeType, modifiedTime, size
        """
        params = {
            "q": f"fullText contains '{escape_query(query)}'",
            "pageSize": page_size,
            "fields": SEARCH_FIELDS,
        }
        response = await self._make_request(
            "GET", "/files", params=params, operation="search"
        )
        files = response.json().get("files") or []
        logger.info(f"Search for {query!r} returned {len(files)} files")
        return files

    async def get_metadata(self, file_id: str) -> dict[str, Any]:
        response = await self._make_request(
            "GET",
            f"/files/{file_id}",
            params={"fields": "id, name, mimeType"},
            operation="metadata",
        )
        return response.json()

    async def read_file(self, file_id: str) -> dict[str, Any]:
        """Read a file's content.

        Google Workspace documents are exported (Docs as Markdown, Sheets as
        CSV, Slides as plain text, Drawings as PNG). Other files are
        downloaded; text and JSON are decoded as UTF-8, everything else is
        base64 encoded.

        Args:
            file_id: Drive file ID

        Returns:
            Dict with id, name, mime_type, content and encoding ("utf-8" or "base64")
        """
        metadata = await self.get_metadata(file_id)
        mime_type = metadata.get("mimeType")
        logger.debug(
            f"File metadata: ID={metadata.get('id')}, Name={metadata.get('name')}, MimeType={mime_type}"
        )

        if mime_type and mime_type.startswith(GOOGLE_APPS_PREFIX):
            content_type = EXPORT_MIME_TYPES.get(mime_type, DEFAULT_EXPORT_MIME_TYPE)
            logger.info(f"Exporting Google Workspace file {file_id} as {content_type}")
            response = await self._make_request(
                "GET",
                f"/files/{file_id}/export",
                params={"mimeType": content_type},
                operation="export",
            )
            if content_type.startswith("image/"):
                content, encoding = _to_base64(response.content), "base64"
            else:
                content, encoding = response.text, "utf-8"
        else:
            content_type = mime_type or DEFAULT_MIME_TYPE
            logger.info(f"Downloading file {file_id} ({content_type})")
            response = await self._make_request(
                "GET",
                f"/files/{file_id}",
                params={"alt": "media"},
                operation="download",
            )
            if is_text_mime_type(content_type):
                content = response.content.decode("utf-8", errors="replace")
                encoding = "utf-8"
            else:
                content, encoding = _to_base64(response.content), "base64"

        return {
            "id": metadata.get("id", file_id),
            "name": metadata.get("name"),
            "mime_type": content_type,
            "content": content,
            "encoding": encoding,
        }


def _to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")
