"""Unit tests for the token artifact watcher."""

import logging

import anyio
import pytest

from gdrive_mcp_server.auth.credential_store import CredentialStore
from gdrive_mcp_server.auth.credentials import ApplicationIdentity, CredentialRecord
from gdrive_mcp_server.auth.errors import NotConfiguredError, WatchSetupFailedError
from gdrive_mcp_server.auth.token_artifact import ParseOutcome
from gdrive_mcp_server.auth.watcher import (
    ArtifactSource,
    ArtifactWatcher,
    FileArtifactSource,
    StoreUpdater,
)

from tests.support import InMemoryArtifactSource, wait_until

pytestmark = pytest.mark.unit


class TestStoreUpdater:
    def test_applies_valid_record(self, store):
        result = StoreUpdater(store)(b'{"access_token": "abc", "refresh_token": "r"}')
        assert result == CredentialRecord(access_token="abc", refresh_token="r")
        assert store.current() == result

    def test_ignores_empty_content(self, store):
        store.update(CredentialRecord(access_token="abc"))
        result = StoreUpdater(store)(b"  \n")
        assert result is ParseOutcome.EMPTY
        assert store.current().access_token == "abc"

    def test_invalid_content_keeps_last_good_credential(self, store, caplog):
        caplog.set_level(logging.WARNING)
        store.update(CredentialRecord(access_token="abc"))

        result = StoreUpdater(store)(b'{"refresh_token": "r"}')

        assert result.is_invalid
        assert store.current().access_token == "abc"
        assert "missing access_token" in caplog.text

    def test_store_rejection_is_raised(self):
        store = CredentialStore()
        store.initialize(ApplicationIdentity())
        with pytest.raises(NotConfiguredError):
            StoreUpdater(store)(b"abc")

    def test_records_metrics(self, store, mocker):
        mock_record = mocker.patch(
            "gdrive_mcp_server.auth.watcher.record_credential_update"
        )
        updater = StoreUpdater(store, source="bootstrap")

        updater(b"abc")
        updater(b"")
        updater(b'{"nope": 1}')

        assert [c.args for c in mock_record.call_args_list] == [
            ("bootstrap", "applied"),
            ("bootstrap", "empty"),
            ("bootstrap", "invalid"),
        ]


class TestArtifactWatcher:
    async def test_end_to_end_updates(self, store, artifact_source):
        """Test empty, then structured, then bare token content."""
        artifact_source.content = b""
        watcher = ArtifactWatcher(artifact_source, StoreUpdater(store))

        async with anyio.create_task_group() as tg:
            await tg.start(watcher.run)
            assert store.current() is None

            artifact_source.write('{"access_token":"abc"}')
            await wait_until(lambda: store.current() is not None)
            assert store.current() == CredentialRecord(access_token="abc")

            artifact_source.write("xyz")
            await wait_until(lambda: store.current().access_token == "xyz")
            assert store.current().refresh_token is None

            tg.cancel_scope.cancel()

        assert watcher.updates_applied == 2

    async def test_initial_content_applied_before_started(self, store):
        source = InMemoryArtifactSource(b'{"access_token": "initial"}')
        watcher = ArtifactWatcher(source, StoreUpdater(store))

        async with anyio.create_task_group() as tg:
            await tg.start(watcher.run)
            assert store.current().access_token == "initial"
            tg.cancel_scope.cancel()

    async def test_missing_artifact_at_start(self, store):
        source = InMemoryArtifactSource(None)
        watcher = ArtifactWatcher(source, StoreUpdater(store))

        async with anyio.create_task_group() as tg:
            await tg.start(watcher.run)
            assert store.current() is None
            assert watcher.last_result is None

            source.write(b"created-later")
            await wait_until(lambda: store.current() is not None)
            tg.cancel_scope.cancel()

        assert store.current().access_token == "created-later"

    async def test_invalid_update_keeps_previous_credential(self, store, artifact_source):
        artifact_source.content = b'{"access_token": "good", "refresh_token": "r"}'
        watcher = ArtifactWatcher(artifact_source, StoreUpdater(store))

        async with anyio.create_task_group() as tg:
            await tg.start(watcher.run)
            artifact_source.write('{"access_token": ""}')
            await wait_until(
                lambda: watcher.last_result is not None
                and isinstance(watcher.last_result, ParseOutcome)
            )
            tg.cancel_scope.cancel()

        assert watcher.last_result.is_invalid
        assert store.current() == CredentialRecord(access_token="good", refresh_token="r")

    async def test_latest_content_wins_when_coalesced(self, store):
        """Test that notifications re-read the full current content."""
        source = InMemoryArtifactSource(b"")
        watcher = ArtifactWatcher(source, StoreUpdater(store))

        source.write(b"first")
        source.write(b"second")
        source.write(b"third")
        source.close()

        await watcher.run()

        assert store.current().access_token == "third"

    async def test_read_error_is_not_fatal(self, store, caplog):
        caplog.set_level(logging.ERROR)
        source = InMemoryArtifactSource(b"abc")
        source.read_error = PermissionError("denied")
        watcher = ArtifactWatcher(source, StoreUpdater(store))

        assert await watcher.apply_current() is None
        assert store.current() is None
        assert "denied" in caplog.text

        source.read_error = None
        assert await watcher.apply_current() == CredentialRecord(access_token="abc")

    async def test_rejected_update_is_not_fatal(self, caplog):
        caplog.set_level(logging.ERROR)
        store = CredentialStore()
        store.initialize(ApplicationIdentity())
        source = InMemoryArtifactSource(b"abc")
        watcher = ArtifactWatcher(source, StoreUpdater(store))

        assert await watcher.apply_current() is None
        assert watcher.updates_applied == 0
        assert "Error processing token artifact" in caplog.text

    async def test_setup_failure_is_reported_once(self, store, caplog):
        caplog.set_level(logging.ERROR)
        source = InMemoryArtifactSource(b"abc")
        source.setup_failure = "no such directory"
        watcher = ArtifactWatcher(source, StoreUpdater(store))

        await watcher.run()

        assert isinstance(watcher.setup_error, WatchSetupFailedError)
        assert watcher.setup_error.reason == "no such directory"
        assert caplog.text.count("Cannot watch token artifact") == 1
        # The initial read still happened
        assert store.current().access_token == "abc"


class TestFileArtifactSource:
    def test_is_artifact_source(self, tmp_path):
        assert isinstance(FileArtifactSource(tmp_path / "token.txt"), ArtifactSource)
        assert isinstance(InMemoryArtifactSource(), ArtifactSource)

    def test_read_existing_file(self, tmp_path):
        path = tmp_path / "token.txt"
        path.write_text('{"access_token": "abc"}')
        assert FileArtifactSource(path).read() == b'{"access_token": "abc"}'

    def test_read_missing_file(self, tmp_path):
        assert FileArtifactSource(tmp_path / "token.txt").read() is None

    def test_location_is_absolute(self, tmp_path):
        source = FileArtifactSource(tmp_path / "token.txt")
        assert source.path.is_absolute()
        assert source.location.endswith("token.txt")

    async def test_missing_directory_fails_setup(self, tmp_path):
        source = FileArtifactSource(tmp_path / "missing" / "token.txt")
        with pytest.raises(WatchSetupFailedError, match="does not exist"):
            async for _ in source.changes():
                pass

    async def test_watcher_survives_missing_directory(self, store, tmp_path):
        source = FileArtifactSource(tmp_path / "missing" / "token.txt")
        watcher = ArtifactWatcher(source, StoreUpdater(store))

        await watcher.run()

        assert watcher.setup_error is not None
        assert watcher.setup_error.path == source.location
        assert store.current() is None

    @pytest.mark.parametrize(
        "error",
        [
            OSError("OS file watch limit reached"),
            RuntimeError("Error creating watcher"),
        ],
    )
    async def test_watch_limit_fails_setup(self, store, tmp_path, mocker, error):
        path = tmp_path / "token.txt"
        path.write_text("abc")
        mocker.patch("gdrive_mcp_server.auth.watcher.awatch", side_effect=error)
        watcher = ArtifactWatcher(FileArtifactSource(path), StoreUpdater(store))

        await watcher.run()

        assert isinstance(watcher.setup_error, WatchSetupFailedError)
        assert watcher.setup_error.reason == str(error)
        assert store.current().access_token == "abc"
