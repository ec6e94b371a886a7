"""Watch the token artifact and apply its content to the credential store.

The watcher consumes an :class:`ArtifactSource`: something that can return
its full current content and produce an endless stream of "content may have
changed" notifications. :class:`FileArtifactSource` implements it for a file
on disk with ``watchfiles``; tests substitute an in-memory source.
"""

import logging
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

import anyio
from anyio.abc import TaskStatus
from watchfiles import Change, awatch

from gdrive_mcp_server.observability.metrics import record_credential_update
from gdrive_mcp_server.observability.tracing import trace_credential_operation

from .credential_store import CredentialStore
from .credentials import CredentialRecord
from .errors import CredentialError, WatchSetupFailedError
from .token_artifact import ParseOutcome, ParseResult, parse_token_artifact

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[bytes], ParseResult]


@runtime_checkable
class ArtifactSource(Protocol):
    """An external, mutable resource carrying the current credential."""

    @property
    def location(self) -> str: ...

    def read(self) -> Optional[bytes]:
        """Return the full current content, or None if it does not exist."""
        ...

    def changes(self) -> AsyncIterator[None]:
        """Yield once per observed change.

        Raises:
            WatchSetupFailedError: If the subscription cannot be established
        """
        ...


class FileArtifactSource:
    """Token artifact backed by a file.

    The parent directory is watched rather than the file itself, so creation,
    in-place modification and atomic rename-over all reach the watcher. The
    directory must exist when the subscription starts.
    """

    def __init__(self, path: str | Path, debounce_ms: int = 200):
        path = Path(path)
        self._path = path.parent.resolve() / path.name
        self._debounce_ms = debounce_ms

    @property
    def path(self) -> Path:
        return self._path

    @property
    def location(self) -> str:
        return str(self._path)

    def read(self) -> Optional[bytes]:
        try:
            return self._path.read_bytes()
        except FileNotFoundError:
            return None

    def _is_artifact(self, change: Change, path: str) -> bool:
        return Path(path) == self._path

    async def changes(self) -> AsyncIterator[None]:
        directory = self._path.parent
        if not directory.is_dir():
            raise WatchSetupFailedError(
                self.location, f"directory {directory} does not exist"
            )

        try:
            async for batch in awatch(
                directory,
                watch_filter=self._is_artifact,
                debounce=self._debounce_ms,
                recursive=False,
            ):
                logger.debug(
                    f"Token artifact {self.location} changed "
                    f"({', '.join(sorted(change.name for change, _ in batch))})"
                )
                yield
        except (OSError, RuntimeError) as e:
            # Missing paths, permissions and OS watch limits
            raise WatchSetupFailedError(self.location, str(e)) from e


class StoreUpdater:
    """Callback that parses artifact content and installs it in the store.

    ``EMPTY`` content is ignored, invalid content is logged and rejected, and
    the last good credential stays in place in both cases.
    """

    def __init__(self, store: CredentialStore, source: str = "file"):
        self._store = store
        self._source = source

    def __call__(self, raw: bytes) -> ParseResult:
        with trace_credential_operation("artifact.apply", {"source": self._source}):
            result = parse_token_artifact(raw)

            if isinstance(result, ParseOutcome):
                if result.is_invalid:
                    logger.warning(
                        f"Ignoring {self._source} token update: {result.reason}. "
                        "Keeping the current credential."
                    )
                record_credential_update(self._source, result.kind)
                return result

            try:
                self._store.update(result)
            except CredentialError:
                record_credential_update(self._source, "rejected")
                raise

            record_credential_update(self._source, "applied")
            return result


class ArtifactWatcher:
    """Keeps the ambient credential in sync with a token artifact.

    Notifications are handled one at a time in arrival order. Each one
    re-reads the full content, so when writes arrive faster than they are
    read only the latest content is applied.
    """

    def __init__(self, source: ArtifactSource, on_update: UpdateCallback):
        self._source = source
        self._on_update = on_update
        self.last_result: Optional[ParseResult] = None
        self.setup_error: Optional[WatchSetupFailedError] = None
        self.updates_applied = 0

    @property
    def source(self) -> ArtifactSource:
        return self._source

    async def apply_current(self) -> Optional[ParseResult]:
        """Read the artifact once and hand its content to the callback.

        Errors are logged, never raised, so one bad read cannot stop the
        watcher.
        """
        try:
            raw = await anyio.to_thread.run_sync(self._source.read)
        except OSError as e:
            logger.error(f"Error reading token artifact {self._source.location}: {e}")
            return None

        if raw is None:
            logger.debug(f"Token artifact {self._source.location} does not exist yet")
            return None

        try:
            result = self._on_update(raw)
        except CredentialError as e:
            logger.error(
                f"Error processing token artifact {self._source.location}: {e}"
            )
            return None

        self.last_result = result
        if isinstance(result, CredentialRecord):
            self.updates_applied += 1
            logger.info(f"Successfully updated tokens from {self._source.location}")
        return result

    async def run(self, *, task_status: TaskStatus = anyio.TASK_STATUS_IGNORED):
        """Apply the current content, then follow changes until cancelled.

        ``task_status.started()`` is signalled after the initial read, so a
        credential present at startup is installed before the caller moves
        on. A subscription failure is reported once and ends the watcher
        without affecting the host process.
        """
        await self.apply_current()
        task_status.started()

        try:
            async for _ in self._source.changes():
                logger.info(
                    f"Token artifact {self._source.location} changed. Re-reading."
                )
                await self.apply_current()
        except WatchSetupFailedError as e:
            self.setup_error = e
            logger.error(
                f"{e}. Token updates from this artifact will not be picked up "
                "until the server is restarted."
            )
            return

        logger.info(f"Stopped watching token artifact {self._source.location}")
