"""Immutable credential value types."""

import hashlib
from dataclasses import dataclass
from typing import Optional

from .errors import IdentityMissingError


def token_fingerprint(token: str) -> str:
    """Short, non-reversible identifier for a token, safe to log."""
    return hashlib.sha256(token.encode()).hexdigest()[:12]


@dataclass(frozen=True)
class ApplicationIdentity:
    """Long-lived OAuth application identity, fixed at process start."""

    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id)

    def __repr__(self) -> str:
        secret = "***" if self.client_secret else None
        return f"ApplicationIdentity(client_id={self.client_id!r}, client_secret={secret!r})"


@dataclass(frozen=True)
class CredentialRecord:
    """One usable bearer credential.

    Updates replace the record as a whole; a record is never mutated.
    Expiry is not tracked here, an expired token surfaces as a remote 401.
    """

    access_token: str
    refresh_token: Optional[str] = None

    def __post_init__(self):
        if not self.access_token:
            raise ValueError("access_token must be a non-empty string")

    @property
    def fingerprint(self) -> str:
        return token_fingerprint(self.access_token)

    def __repr__(self) -> str:
        refresh = "present" if self.refresh_token else "absent"
        return f"CredentialRecord(access_token=<{self.fingerprint}>, refresh_token={refresh})"


@dataclass(frozen=True)
class DriveCredentials:
    """Credential set carried by one authenticated Drive client.

    Combines the application identity with either the ambient record or a
    per-request override token.
    """

    client_id: str
    access_token: str
    client_secret: Optional[str] = None
    refresh_token: Optional[str] = None
    scoped: bool = False

    @classmethod
    def from_record(
        cls, identity: ApplicationIdentity, record: CredentialRecord
    ) -> "DriveCredentials":
        if identity.client_id is None:
            raise IdentityMissingError()
        return cls(
            client_id=identity.client_id,
            client_secret=identity.client_secret,
            access_token=record.access_token,
            refresh_token=record.refresh_token,
        )

    @classmethod
    def from_override(
        cls, identity: ApplicationIdentity, token: str
    ) -> "DriveCredentials":
        if identity.client_id is None:
            raise IdentityMissingError()
        return cls(
            client_id=identity.client_id,
            client_secret=identity.client_secret,
            access_token=token,
            scoped=True,
        )

    def __repr__(self) -> str:
        return (
            f"DriveCredentials(client_id={self.client_id!r}, "
            f"access_token=<{token_fingerprint(self.access_token)}>, "
            f"refresh_token={'present' if self.refresh_token else 'absent'}, "
            f"scoped={self.scoped})"
        )
