"""Credential lifecycle for the Google Drive MCP server."""

from .bearer_auth import BearerAuth
from .credential_store import CredentialStore
from .credentials import (
    ApplicationIdentity,
    CredentialRecord,
    DriveCredentials,
    token_fingerprint,
)
from .errors import (
    CredentialError,
    IdentityMissingError,
    NoCredentialError,
    NotConfiguredError,
    RemoteAuthRejectedError,
    WatchSetupFailedError,
)
from .token_artifact import ParseOutcome, parse_token_artifact
from .watcher import ArtifactSource, ArtifactWatcher, FileArtifactSource, StoreUpdater

__all__ = [
    "ApplicationIdentity",
    "ArtifactSource",
    "ArtifactWatcher",
    "BearerAuth",
    "CredentialError",
    "CredentialRecord",
    "CredentialStore",
    "DriveCredentials",
    "FileArtifactSource",
    "IdentityMissingError",
    "NoCredentialError",
    "NotConfiguredError",
    "ParseOutcome",
    "RemoteAuthRejectedError",
    "StoreUpdater",
    "WatchSetupFailedError",
    "parse_token_artifact",
    "token_fingerprint",
]
