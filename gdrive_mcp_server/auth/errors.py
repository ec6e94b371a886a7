"""Exceptions raised by the credential subsystem.

All of these are fatal only to the operation that triggered them. Tool
handlers catch :class:`CredentialError` and surface it as an MCP error; the
process keeps running so a later credential update can succeed.
"""


class CredentialError(Exception):
    """Base class for credential availability and configuration errors."""


class IdentityMissingError(CredentialError):
    """Raised when no OAuth client ID is configured.

    Neither the ambient client nor a per-request override client can be
    built without an application identity.
    """

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "OAuth client is not configured. Ensure GOOGLE_CLIENT_ID is set."
        )


class NoCredentialError(CredentialError):
    """Raised when ambient auth is requested before any token was installed."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "No Google Drive access token is available yet. Provide a token "
            "with the request or deliver one through the auth endpoint."
        )


class NotConfiguredError(CredentialError):
    """Raised when a credential update reaches a store without identity."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "Credential store was not initialized with a client ID; cannot set tokens."
        )


class WatchSetupFailedError(CredentialError):
    """Raised when the token artifact cannot be subscribed to."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot watch token artifact {path}: {reason}")


class RemoteAuthRejectedError(CredentialError):
    """Raised when Google Drive rejects the credential of a request.

    The remote message is kept verbatim; only an external actor can supply a
    fresh token, so nothing is retried locally.
    """

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.remote_message = message
        super().__init__(f"Google Drive rejected the credential ({status_code}): {message}")
