"""Build per-request Google Drive clients from ambient or override credentials."""

import logging
from typing import Optional

from httpx import AsyncBaseTransport

from gdrive_mcp_server.client import DRIVE_API_BASE_URL, GoogleDriveClient
from gdrive_mcp_server.observability.metrics import record_scoped_client

from .credential_store import CredentialStore
from .credentials import ApplicationIdentity, DriveCredentials, token_fingerprint
from .errors import IdentityMissingError, NoCredentialError

logger = logging.getLogger(__name__)


class ScopedClientFactory:
    """Creates an independent :class:`GoogleDriveClient` for each request.

    With an override token the client carries that token only, and the
    ambient credential store is neither read for the token nor modified.
    Without one, the store's current record is used.
    """

    def __init__(
        self,
        store: CredentialStore,
        *,
        base_url: str = DRIVE_API_BASE_URL,
        timeout: float = 30,
        transport: AsyncBaseTransport | None = None,
    ):
        self._store = store
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport

    @property
    def store(self) -> CredentialStore:
        return self._store

    def build(
        self, identity: ApplicationIdentity, override_token: Optional[str] = None
    ) -> GoogleDriveClient:
        """Build a client for one request.

        Args:
            identity: Application identity the client acts as
            override_token: Access token for this request only

        Raises:
            IdentityMissingError: If the identity has no client ID
            NoCredentialError: If no override is given and no ambient
                credential has been installed yet
        """
        mode = "override" if override_token else "ambient"

        if not identity.is_configured:
            record_scoped_client(mode, "identity_missing")
            raise IdentityMissingError()

        if override_token:
            logger.debug(
                f"Building Drive client with override token {token_fingerprint(override_token)}"
            )
            credentials = DriveCredentials.from_override(identity, override_token)
        else:
            record = self._store.current()
            if record is None:
                record_scoped_client(mode, "no_credential")
                raise NoCredentialError()
            logger.debug(
                f"Building Drive client with ambient token {record.fingerprint}"
            )
            credentials = DriveCredentials.from_record(identity, record)

        record_scoped_client(mode)
        return GoogleDriveClient(
            credentials,
            base_url=self._base_url,
            transport=self._transport,
            timeout=self._timeout,
        )

    def for_request(self, override_token: Optional[str] = None) -> GoogleDriveClient:
        """Build a client using the store's identity."""
        return self.build(self._store.identity, override_token)
