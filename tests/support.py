"""Test doubles shared across unit tests."""

from typing import Optional

import anyio

from gdrive_mcp_server.auth.errors import WatchSetupFailedError


class InMemoryArtifactSource:
    """Token artifact held in memory, with changes signalled explicitly."""

    location = "memory://auth_token"

    def __init__(self, content: Optional[bytes] = None):
        self.content = content
        self.setup_failure: Optional[str] = None
        self.read_error: Optional[OSError] = None
        self._send, self._receive = anyio.create_memory_object_stream(100)

    def read(self) -> Optional[bytes]:
        if self.read_error is not None:
            raise self.read_error
        return self.content

    def write(self, content: bytes | str) -> None:
        if isinstance(content, str):
            content = content.encode()
        self.content = content
        self._send.send_nowait(None)

    def close(self) -> None:
        self._send.close()

    async def changes(self):
        if self.setup_failure:
            raise WatchSetupFailedError(self.location, self.setup_failure)
        async with self._receive:
            async for _ in self._receive:
                yield


async def wait_until(predicate, timeout: float = 2.0):
    """Poll until ``predicate()`` is true."""
    with anyio.fail_after(timeout):
        while not predicate():
            await anyio.sleep(0.01)
