"""Tests for CLI options using Click's testing utilities."""

import os

import pytest
from click.testing import CliRunner

from gdrive_mcp_server.cli import cli, run


@pytest.fixture
def runner():
    """Create a Click CLI runner."""
    return CliRunner()


@pytest.fixture
def clean_env(monkeypatch):
    """Clean environment variables before each test."""
    for var in [
        "GOOGLE_CLIENT_ID",
        "GOOGLE_CLIENT_SECRET",
        "GDRIVE_TOKEN_FILE",
        "AUTH_INGESTION_ENABLED",
    ]:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def captured_env(monkeypatch):
    captured = {}

    def mock_get_app(*args, **kwargs):
        captured.update(
            {
                "transport": kwargs.get("transport"),
                "GOOGLE_CLIENT_ID": os.environ.get("GOOGLE_CLIENT_ID"),
                "GOOGLE_CLIENT_SECRET": os.environ.get("GOOGLE_CLIENT_SECRET"),
                "GDRIVE_TOKEN_FILE": os.environ.get("GDRIVE_TOKEN_FILE"),
                "AUTH_INGESTION_ENABLED": os.environ.get("AUTH_INGESTION_ENABLED"),
            }
        )
        # Stop before uvicorn.run
        raise SystemExit(0)

    monkeypatch.setattr("gdrive_mcp_server.cli.get_app", mock_get_app)
    return captured


def test_help_message_displays_options(runner):
    result = runner.invoke(run, ["--help"])
    assert result.exit_code == 0
    for option in ["--client-id", "--client-secret", "--token-file", "--transport"]:
        assert option in result.output


def test_group_lists_commands(runner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "run" in result.output
    assert "auth-handler" in result.output
    assert "token" in result.output


def test_transport_rejects_invalid_values(runner, clean_env):
    result = runner.invoke(run, ["--transport", "stdio"])
    assert result.exit_code != 0
    assert "Invalid value" in result.output


def test_cli_options_set_environment_variables(runner, clean_env, captured_env):
    runner.invoke(
        run,
        [
            "--client-id",
            "cli-client",
            "--client-secret",
            "cli-secret",
            "--token-file",
            "/data/token.json",
            "--no-auth-ingestion",
            "--transport",
            "sse",
        ],
    )

    assert captured_env["GOOGLE_CLIENT_ID"] == "cli-client"
    assert captured_env["GOOGLE_CLIENT_SECRET"] == "cli-secret"
    assert captured_env["GDRIVE_TOKEN_FILE"] == "/data/token.json"
    assert captured_env["AUTH_INGESTION_ENABLED"] == "false"
    assert captured_env["transport"] == "sse"


def test_environment_variables_used_when_cli_not_provided(
    runner, monkeypatch, captured_env
):
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "env-client")
    monkeypatch.setenv("GDRIVE_TOKEN_FILE", "/env/token.txt")
    monkeypatch.delenv("AUTH_INGESTION_ENABLED", raising=False)

    runner.invoke(run, [])

    assert captured_env["GOOGLE_CLIENT_ID"] == "env-client"
    assert captured_env["GDRIVE_TOKEN_FILE"] == "/env/token.txt"
    assert captured_env["AUTH_INGESTION_ENABLED"] is None


def test_missing_client_id_warns(runner, clean_env, captured_env):
    result = runner.invoke(run, [])
    assert "GOOGLE_CLIENT_ID is not set" in result.output


class TestTokenParse:
    def test_structured_token(self, runner, tmp_path):
        path = tmp_path / "token.json"
        path.write_text('{"access_token": "secret-access", "refresh_token": "r"}')

        result = runner.invoke(cli, ["token", "parse", str(path)])

        assert result.exit_code == 0
        assert "Valid credential" in result.output
        assert "Refresh token: present" in result.output
        assert "secret-access" not in result.output

    def test_empty_artifact(self, runner, tmp_path):
        path = tmp_path / "token.json"
        path.write_text("")

        result = runner.invoke(cli, ["token", "parse", str(path)])

        assert result.exit_code == 0
        assert "empty" in result.output

    def test_invalid_artifact(self, runner, tmp_path):
        path = tmp_path / "token.json"
        path.write_text('{"refresh_token": "r"}')

        result = runner.invoke(cli, ["token", "parse", str(path)])

        assert result.exit_code != 0
        assert "missing access_token" in result.output
