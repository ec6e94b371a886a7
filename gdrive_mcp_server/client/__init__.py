import logging

from httpx import (
    AsyncBaseTransport,
    AsyncClient,
    AsyncHTTPTransport,
    Request,
    Response,
    Timeout,
)

from ..auth.bearer_auth import BearerAuth
from ..auth.credentials import DriveCredentials
from .files import DriveFilesClient

logger = logging.getLogger(__name__)

DRIVE_API_BASE_URL = "https://www.googleapis.com/drive/v3"


async def log_request(request: Request):
    logger.debug("Request event hook: %s %s", request.method, request.url)


async def log_response(response: Response):
    await response.aread()
    logger.debug(
        "Response [%s] %s (%d bytes)",
        response.status_code,
        response.request.url,
        len(response.content),
    )


class AsyncDisableCookieTransport(AsyncBaseTransport):
    """This Transport disable cookies from accumulating in the httpx AsyncClient

    Thanks to: https://github.com/encode/httpx/issues/2992#issuecomment-2133258994
    """

    def __init__(self, transport: AsyncBaseTransport):
        self.transport = transport

    async def handle_async_request(self, request: Request) -> Response:
        response = await self.transport.handle_async_request(request)
        response.headers.pop("set-cookie", None)
        return response

    async def aclose(self) -> None:
        await self.transport.aclose()


class GoogleDriveClient:
    """Authenticated Google Drive client for a single request.

    Each instance owns its own HTTP connection pool and bearer credential.
    Instances are never shared between requests, so building one never
    affects another or the ambient credential store.
    """

    def __init__(
        self,
        credentials: DriveCredentials,
        base_url: str = DRIVE_API_BASE_URL,
        transport: AsyncBaseTransport | None = None,
        timeout: float = 30,
    ):
        self.credentials = credentials
        self._client = AsyncClient(
            base_url=base_url,
            auth=BearerAuth(credentials.access_token),
            transport=AsyncDisableCookieTransport(transport or AsyncHTTPTransport()),
            event_hooks={"request": [log_request], "response": [log_response]},
            timeout=Timeout(timeout=timeout, connect=5),
        )

        self.files = DriveFilesClient(self._client)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False  # Don't suppress exceptions

    async def close(self):
        await self._client.aclose()


__all__ = ["DRIVE_API_BASE_URL", "DriveFilesClient", "GoogleDriveClient"]
