"""Process-wide ambient credential state."""

import logging
import threading
from typing import Optional

from .credentials import ApplicationIdentity, CredentialRecord
from .errors import NotConfiguredError

logger = logging.getLogger(__name__)


class CredentialStore:
    """Holds the application identity and the current ambient credential.

    The store is created once at startup and passed down through the
    application context. The artifact watcher is its only writer; every
    ambient-mode request reads from it. Records are immutable and swapped
    under a lock, so a reader sees either the previous record or the new
    one in full.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._identity: Optional[ApplicationIdentity] = None
        self._record: Optional[CredentialRecord] = None
        self._version = 0

    def initialize(self, identity: ApplicationIdentity) -> bool:
        """Fix the application identity for the lifetime of the store.

        A missing client ID is not fatal: the store records that ambient auth
        is unavailable and keeps running.

        Returns:
            True if ambient auth is possible with this identity
        """
        with self._lock:
            if self._identity is not None:
                raise RuntimeError("CredentialStore is already initialized")
            self._identity = identity

        if not identity.is_configured:
            logger.warning(
                "GOOGLE_CLIENT_ID not set. Ambient authentication is unavailable "
                "and Drive calls will fail until the server is restarted with a client ID."
            )
            return False

        if not identity.client_secret:
            logger.warning(
                "GOOGLE_CLIENT_SECRET not set. Using client ID only; pre-obtained "
                "tokens still work but some OAuth flows are limited."
            )
        logger.info(
            "Credential store initialized with Client ID "
            f"{'and Client Secret' if identity.client_secret else '(Client Secret not provided)'}"
        )
        return True

    @property
    def identity(self) -> ApplicationIdentity:
        """The configured identity, or an empty one before initialization."""
        return self._identity or ApplicationIdentity()

    @property
    def ambient_available(self) -> bool:
        return self.identity.is_configured

    @property
    def version(self) -> int:
        """Number of records installed so far."""
        return self._version

    def update(self, record: CredentialRecord) -> None:
        """Atomically replace the ambient credential.

        Raises:
            NotConfiguredError: If the store has no client ID
        """
        if not self.ambient_available:
            logger.error(
                "Credential store has no client ID (missing GOOGLE_CLIENT_ID?). "
                "Cannot set tokens."
            )
            raise NotConfiguredError()

        with self._lock:
            self._record = record
            self._version += 1
            version = self._version

        logger.info(
            f"Ambient credential updated (version {version}, token {record.fingerprint}). "
            f"Refresh token was {'provided' if record.refresh_token else 'not provided'}."
        )

    def current(self) -> Optional[CredentialRecord]:
        """Latest installed record, or None if none has been installed."""
        with self._lock:
            return self._record
