"""Unit tests for the token ingestion endpoint."""

import json

import pytest
from starlette.testclient import TestClient

from gdrive_mcp_server.auth.ingestion_routes import create_ingestion_app, write_artifact
from gdrive_mcp_server.auth.token_artifact import parse_token_artifact

pytestmark = pytest.mark.unit


@pytest.fixture
def token_file(tmp_path):
    return tmp_path / "auth_token.txt"


@pytest.fixture
def client(token_file):
    return TestClient(create_ingestion_app(token_file))


def test_valid_json_is_written_verbatim(client, token_file):
    body = b'{"access_token": "abc",  "refresh_token": "r"}'
    response = client.post("/auth", content=body)

    assert response.status_code == 200
    assert response.text == "Token received"
    assert token_file.read_bytes() == body


def test_written_artifact_parses_to_credential(client, token_file):
    client.post("/auth", json={"access_token": "abc", "refresh_token": "r"})

    record = parse_token_artifact(token_file.read_bytes())
    assert record.access_token == "abc"
    assert record.refresh_token == "r"


def test_new_token_replaces_previous(client, token_file):
    token_file.write_text(json.dumps({"access_token": "old"}))
    client.post("/auth", json={"access_token": "new"})
    assert json.loads(token_file.read_text()) == {"access_token": "new"}


def test_invalid_json_is_rejected(client, token_file):
    response = client.post("/auth", content=b"not json {")

    assert response.status_code == 400
    assert response.text == "Bad Request: Invalid JSON payload"
    assert not token_file.exists()


def test_invalid_json_keeps_existing_artifact(client, token_file):
    token_file.write_text('{"access_token": "keep"}')
    client.post("/auth", content=b"{broken")
    assert token_file.read_text() == '{"access_token": "keep"}'


def test_write_failure_returns_500(tmp_path):
    client = TestClient(create_ingestion_app(tmp_path / "missing" / "auth_token.txt"))

    response = client.post("/auth", json={"access_token": "abc"})

    assert response.status_code == 500
    assert response.text == "Internal Server Error"


def test_unknown_path_returns_404(client):
    response = client.post("/token", json={"access_token": "abc"})
    assert response.status_code == 404


def test_wrong_method_is_rejected(client, token_file):
    response = client.get("/auth")
    assert response.status_code == 405
    assert not token_file.exists()


def test_write_artifact_leaves_no_temp_files(tmp_path):
    path = tmp_path / "auth_token.txt"
    write_artifact(path, b"abc")
    write_artifact(path, b"xyz")

    assert path.read_bytes() == b"xyz"
    assert [p.name for p in tmp_path.iterdir()] == ["auth_token.txt"]


def test_payload_is_not_logged(client, caplog):
    caplog.set_level("DEBUG")
    client.post("/auth", json={"access_token": "very-secret-token"})
    assert "very-secret-token" not in caplog.text
