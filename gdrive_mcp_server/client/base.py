"""Base client for Google Drive operations with shared authentication."""

import logging
import time
from abc import ABC
from functools import wraps

import anyio
from httpx import AsyncClient, HTTPStatusError, RequestError, codes

from gdrive_mcp_server.auth.errors import RemoteAuthRejectedError
from gdrive_mcp_server.observability.metrics import (
    record_drive_api_call,
    record_drive_api_retry,
)
from gdrive_mcp_server.observability.tracing import trace_drive_api_call

logger = logging.getLogger(__name__)


def remote_error_message(e: HTTPStatusError) -> str:
    """Extract Google's error message from a failed response, if present."""
    try:
        payload = e.response.json()
    except ValueError:
        return e.response.text or str(e)
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    if isinstance(error, str):
        return payload.get("error_description") or error
    return e.response.text or str(e)


def retry_on_429(func):
    """This decorator handles the 429 response from REST APIs

    The `func` is assumed to be a method that is similar to `httpx.Client.get`,
    and returns an `httpx.Response` object. In the case of `Too Many Requests` HTTP
    response, the function will wait for a couple of seconds and retry the request.
    """

    MAX_RETRIES = 5

    @wraps(func)
    async def wrapper(*args, **kwargs):
        retries = 0

        while retries < MAX_RETRIES:
            try:
                retries += 1
                response = await func(*args, **kwargs)
                break

            except HTTPStatusError as e:
                if e.response.status_code == codes.TOO_MANY_REQUESTS:
                    logger.warning(
                        f"429 Client Error: Too Many Requests, Number of attempts: {retries}"
                    )
                    record_drive_api_retry(
                        operation=kwargs.get("operation", "unknown"), reason="429"
                    )
                    await anyio.sleep(5)
                elif e.response.status_code == 404:
                    logger.debug(
                        f"HTTPStatusError {e.response.status_code}: {e}, Number of attempts: {retries}"
                    )
                    raise
                else:
                    logger.warning(
                        f"HTTPStatusError {e.response.status_code}: {e}, Number of attempts: {retries}"
                    )
                    raise
            except RequestError as e:
                logger.warning(
                    f"RequestError {e.request.url}: {e}, Number of attempts: {retries}"
                )
                raise

        else:
            logger.warning("All API call retries failed")
            raise RuntimeError(
                f"Maximum number of retries ({MAX_RETRIES}) exceeded without success"
            )

        return response

    return wrapper


class BaseDriveClient(ABC):
    """Base class for Google Drive API clients."""

    def __init__(self, http_client: AsyncClient):
        """Initialize with a shared, already authenticated HTTP client.

        Args:
            http_client: AsyncClient carrying the request's bearer credential
        """
        self._client = http_client

    async def _make_request(
        self, method: str, url: str, *, operation: str = "unknown", **kwargs
    ):
        """Common request wrapper with logging, tracing, and error handling.

        Args:
            method: HTTP method
            url: Request URL, relative to the Drive API base
            operation: Logical operation name for metrics and spans
            **kwargs: Additional request parameters

        Returns:
            Response object

        Raises:
            RemoteAuthRejectedError: If Google Drive answers 401
            HTTPStatusError: For any other error status
        """
        try:
            return await self._send(method, url, operation=operation, **kwargs)
        except HTTPStatusError as e:
            if e.response.status_code == codes.UNAUTHORIZED:
                message = remote_error_message(e)
                logger.warning(f"Google Drive rejected the credential: {message}")
                raise RemoteAuthRejectedError(e.response.status_code, message) from e
            raise

    @retry_on_429
    async def _send(self, method: str, url: str, *, operation: str, **kwargs):
        logger.debug(f"Making {method} request to {url}")

        start_time = time.time()
        status_code = 0

        try:
            with trace_drive_api_call(
                operation=operation,
                method=method,
                path=url,
            ):
                response = await self._client.request(method, url, **kwargs)
                status_code = response.status_code
                response.raise_for_status()

                record_drive_api_call(
                    operation=operation,
                    method=method,
                    status_code=status_code,
                    duration=time.time() - start_time,
                )

                return response

        except (HTTPStatusError, RequestError) as e:
            if isinstance(e, HTTPStatusError):
                status_code = e.response.status_code
            else:
                status_code = 0

            record_drive_api_call(
                operation=operation,
                method=method,
                status_code=status_code,
                duration=time.time() - start_time,
            )
            raise
