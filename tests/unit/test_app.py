"""Tests for application wiring: health probes, startup credentials and ingestion."""

import json
import time

import pytest
from starlette.testclient import TestClient

from gdrive_mcp_server.app import apply_bootstrap_token, get_app
from gdrive_mcp_server.auth.credential_store import CredentialStore
from gdrive_mcp_server.auth.credentials import ApplicationIdentity, CredentialRecord
from gdrive_mcp_server.auth.token_artifact import ParseOutcome
from gdrive_mcp_server.config import Settings


@pytest.fixture
def token_file(tmp_path):
    return tmp_path / "auth_token.txt"


def make_settings(token_file, **overrides) -> Settings:
    values = dict(
        google_client_id="test-client-id",
        google_client_secret="test-secret",
        token_file=str(token_file),
        metrics_enabled=False,
        watch_debounce_ms=10,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.mark.unit
class TestHealth:
    def test_live(self, token_file):
        app = get_app(settings=make_settings(token_file))
        with TestClient(app) as client:
            response = client.get("/health/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_ready_reports_credential_presence(self, token_file):
        app = get_app(settings=make_settings(token_file))
        with TestClient(app) as client:
            response = client.get("/health/ready")

        assert response.status_code == 200
        checks = response.json()["checks"]
        assert checks["client_configured"] == "ok"
        assert checks["ambient_credential"] == "absent"
        assert checks["token_watcher"] == "ok"

    def test_not_ready_without_client_id(self, token_file):
        app = get_app(settings=make_settings(token_file, google_client_id=None))
        with TestClient(app) as client:
            response = client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        assert body["checks"]["token_watcher"] == "disabled"

    def test_ready_reports_watch_failure(self, tmp_path):
        app = get_app(settings=make_settings(tmp_path / "missing" / "auth_token.txt"))
        with TestClient(app) as client:
            response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["checks"]["token_watcher"].startswith("error:")


@pytest.mark.unit
class TestStartupCredentials:
    def test_artifact_present_at_startup(self, token_file):
        token_file.write_text(json.dumps({"access_token": "from-file"}))
        app = get_app(settings=make_settings(token_file))

        with TestClient(app) as client:
            response = client.get("/health/ready")
            record = app.state.app_context.store.current()

        assert response.json()["checks"]["ambient_credential"] == "present"
        assert record.access_token == "from-file"

    def test_bootstrap_token_when_artifact_absent(self, token_file):
        app = get_app(settings=make_settings(token_file, bootstrap_token="boot"))

        with TestClient(app):
            record = app.state.app_context.store.current()

        assert record.access_token == "boot"

    def test_artifact_wins_over_bootstrap_token(self, token_file):
        token_file.write_text("from-file")
        app = get_app(settings=make_settings(token_file, bootstrap_token="boot"))

        with TestClient(app):
            record = app.state.app_context.store.current()

        assert record.access_token == "from-file"

    def test_invalid_artifact_blocks_bootstrap_token(self, token_file):
        token_file.write_text('{"refresh_token": "r"}')
        app = get_app(settings=make_settings(token_file, bootstrap_token="boot"))

        with TestClient(app):
            record = app.state.app_context.store.current()

        assert record is None

    def test_bootstrap_token_when_artifact_empty(self, token_file):
        token_file.write_text("  \n")
        app = get_app(settings=make_settings(token_file, bootstrap_token="boot"))

        with TestClient(app):
            record = app.state.app_context.store.current()

        assert record.access_token == "boot"


@pytest.mark.unit
class TestApplyBootstrapToken:
    def test_no_token(self, store):
        assert apply_bootstrap_token(store, None) is None
        assert store.current() is None

    def test_existing_credential_is_kept(self, store):
        store.update(CredentialRecord(access_token="existing"))
        assert apply_bootstrap_token(store, "boot") is None
        assert store.current().access_token == "existing"

    def test_ignored_without_identity(self):
        store = CredentialStore()
        store.initialize(ApplicationIdentity())
        assert apply_bootstrap_token(store, "boot") is None

    def test_invalid_artifact_blocks_bootstrap(self, store):
        result = ParseOutcome.invalid("missing access_token")
        assert apply_bootstrap_token(store, "boot", result) is None
        assert store.current() is None

    def test_empty_artifact_allows_bootstrap(self, store):
        apply_bootstrap_token(store, "boot", ParseOutcome.EMPTY)
        assert store.current().access_token == "boot"

    def test_structured_bootstrap_token(self, store):
        apply_bootstrap_token(store, '{"access_token": "a", "refresh_token": "r"}')
        assert store.current() == CredentialRecord(access_token="a", refresh_token="r")


@pytest.mark.unit
class TestIngestionRoute:
    def test_auth_route_writes_artifact(self, token_file):
        app = get_app(settings=make_settings(token_file))
        with TestClient(app) as client:
            response = client.post("/auth", json={"access_token": "abc"})

        assert response.status_code == 200
        assert json.loads(token_file.read_text()) == {"access_token": "abc"}

    def test_auth_route_disabled(self, token_file):
        app = get_app(settings=make_settings(token_file, auth_ingestion_enabled=False))
        with TestClient(app) as client:
            response = client.post("/auth", json={"access_token": "abc"})

        assert response.status_code == 404
        assert not token_file.exists()


@pytest.mark.integration
def test_delivered_token_reaches_store(token_file):
    """Test a token posted to /auth is picked up by the running watcher."""
    app = get_app(settings=make_settings(token_file))
    store = app.state.app_context.store

    with TestClient(app) as client:
        deadline = time.monotonic() + 10
        while store.current() is None and time.monotonic() < deadline:
            # Repeat until the file watch is established and sees a write
            client.post("/auth", json={"access_token": "delivered"})
            time.sleep(0.2)

    assert store.current() is not None
    assert store.current().access_token == "delivered"
