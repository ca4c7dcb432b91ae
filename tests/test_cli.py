"""Tests for the ssh-tunnels command line."""

import json
import logging

import pytest
import structlog
from click.testing import CliRunner

from ssh_tunnels.cli import main
from ssh_tunnels.connection.attempt import SSHConnector
from ssh_tunnels.tunnels.models import PasswordAuth
from ssh_tunnels.tunnels.storage import TunnelStore


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to the runner's captured stdout."""
    yield
    logging.getLogger().handlers = []
    structlog.reset_defaults()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def mock_ssh(monkeypatch, connect_socket, transport_factory, load_key):
    """Make the CLI connect through the mock socket and transport."""

    def _connector(credentials):
        return SSHConnector(
            credentials,
            connect_socket=connect_socket,
            transport_factory=transport_factory,
            load_key=load_key,
        )

    monkeypatch.setattr("ssh_tunnels.manager.SSHConnector", _connector)
    return connect_socket


@pytest.fixture
def invoke(runner, tmp_path, store_path, mock_ssh):
    """Invoke the CLI against temp files without prompting."""

    def _invoke(*args, input=None, prompt=False):
        base = [
            "--store", str(store_path),
            "--audit-log", str(tmp_path / "audit.log"),
            "--log-level", "ERROR",
            "--prompt" if prompt else "--no-prompt",
        ]
        return runner.invoke(main, base + list(args), input=input)

    return _invoke


ADD_ARGS = [
    "add", "--id", "1", "--name", "db", "--user", "deploy", "--host", "10.0.0.5",
    "--local-port", "5432", "--remote-port", "5432",
]


class TestCommands:
    def test_add_and_list(self, invoke, store_path):
        result = invoke(*ADD_ARGS, "--auto-connect", "--timeout", "10")

        assert result.exit_code == 0, result.output
        assert "Tunnel 'db' added with ID 1" in result.output
        stored = json.loads(store_path.read_text())["1"]
        assert stored["timeout"] == 10
        assert stored["auto_connect"] is True

        listing = invoke("--no-auto-connect", "list")
        assert "ID: 1, Name: 'db', Host: 10.0.0.5" in listing.output
        assert "Auth: password, Auto-connect: on" in listing.output

    def test_list_empty(self, invoke):
        result = invoke("list")

        assert result.exit_code == 0
        assert "No tunnels configured." in result.output

    def test_add_duplicate_fails(self, invoke):
        invoke(*ADD_ARGS)

        result = invoke(*ADD_ARGS)

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_add_with_saved_password(self, invoke, store_path):
        result = invoke(*ADD_ARGS, "--save-password", input="pw\npw\n")

        assert result.exit_code == 0, result.output
        assert json.loads(store_path.read_text())["1"]["saved_password"] == "pw"

    def test_key_auth_with_saved_password_rejected(self, invoke):
        result = invoke(*ADD_ARGS, "--key-auth", "--save-password")

        assert result.exit_code == 2
        assert "--save-password cannot be used with --key-auth" in result.output

    def test_add_trims_text_input(self, invoke, store_path):
        result = invoke(
            "add", "--id", "1", "--name", " db ", "--user", " deploy", "--host", "10.0.0.5 ",
            "--local-port", "5432", "--remote-port", "5432",
        )

        assert result.exit_code == 0, result.output
        stored = json.loads(store_path.read_text())["1"]
        assert (stored["name"], stored["username"], stored["hostname"]) == ("db", "deploy", "10.0.0.5")

    def test_add_blank_host_rejected(self, invoke, store_path):
        result = invoke(
            "add", "--id", "1", "--name", "db", "--user", "deploy", "--host", "  ",
            "--local-port", "5432", "--remote-port", "5432",
        )

        assert result.exit_code == 2
        assert "Host must not be empty" in result.output
        assert not store_path.exists()

    def test_remove(self, invoke, store_path):
        invoke(*ADD_ARGS)

        result = invoke("remove", "1")

        assert result.exit_code == 0
        assert json.loads(store_path.read_text()) == {}

    def test_remove_missing(self, invoke):
        result = invoke("remove", "5")

        assert result.exit_code == 1
        assert "Tunnel with ID 5 not found" in result.output

    def test_connect_success(self, invoke, store_path, make_tunnel, mock_ssh):
        TunnelStore(store_path).write({1: make_tunnel(1, name="db")})

        result = invoke("connect", "1")

        assert result.exit_code == 0, result.output
        assert "Connected to 'db'" in result.output
        mock_ssh.assert_called_once_with(("10.0.0.1", 22), timeout=30)

    def test_connect_failure_exit_code(self, invoke, store_path, make_tunnel, mock_ssh):
        TunnelStore(store_path).write({1: make_tunnel(1)})
        mock_ssh.side_effect = ConnectionRefusedError("refused")

        result = invoke("connect", "1")

        assert result.exit_code == 1
        assert "[network_error]" in result.output

    def test_connect_prompts_for_missing_password(self, invoke, store_path, make_tunnel, mock_transport):
        TunnelStore(store_path).write({1: make_tunnel(1, credential=PasswordAuth())})

        result = invoke("connect", "1", input="typed\n", prompt=True)

        assert result.exit_code == 0, result.output
        mock_transport.auth_password.assert_called_once_with("deploy", "typed")

    def test_connect_all(self, invoke, store_path, make_tunnel, mock_ssh):
        TunnelStore(store_path).write({1: make_tunnel(1), 2: make_tunnel(2)})

        result = invoke("connect-all")

        assert result.exit_code == 0
        assert mock_ssh.call_count == 2

    def test_startup_runs_auto_connect(self, invoke, store_path, make_tunnel, mock_ssh):
        TunnelStore(store_path).write({1: make_tunnel(1, auto_connect=True), 2: make_tunnel(2)})

        result = invoke("list")

        assert result.exit_code == 0
        assert mock_ssh.call_count == 1
        assert "Connected to 'tunnel-1'" in result.output

    def test_corrupt_store_aborts(self, invoke, store_path):
        store_path.write_text("not json")

        result = invoke("list")

        assert result.exit_code == 1
        assert "Invalid tunnel data" in result.output
        assert store_path.read_text() == "not json"

    def test_search(self, invoke, store_path, make_tunnel):
        TunnelStore(store_path).write({1: make_tunnel(1, name="db"), 2: make_tunnel(2, name="web")})

        found = invoke("search", "db")
        missing = invoke("search", "zzz")

        assert "ID: 1, Name: 'db'" in found.output
        assert "web" not in found.output
        assert missing.exit_code == 0
        assert "No tunnels match 'zzz'." in missing.output

    def test_export_and_import(self, invoke, tmp_path, store_path, make_tunnel):
        TunnelStore(store_path).write({1: make_tunnel(1)})
        exported = tmp_path / "export.json"

        result = invoke("export", str(exported))
        assert result.exit_code == 0
        assert "Exported 1 tunnel(s)" in result.output

        TunnelStore.write_export(exported, {1: make_tunnel(1, name="renamed")})
        result = invoke("import", str(exported))
        assert "Imported 1 tunnel(s)" in result.output
        assert json.loads(store_path.read_text())["1"]["name"] == "renamed"

    def test_import_missing_file(self, invoke, tmp_path):
        result = invoke("import", str(tmp_path / "nope.json"))

        assert result.exit_code == 1
        assert "Failed to read import file" in result.output

    def test_unopenable_audit_log(self, runner, tmp_path, store_path):
        result = runner.invoke(
            main,
            ["--store", str(store_path), "--audit-log", str(tmp_path / "x" / "a.log"), "list"],
        )

        assert result.exit_code == 1
        assert "Cannot open audit log" in result.output


class TestShell:
    def test_add_list_exit(self, invoke, store_path):
        """Test the interactive menu adds a tunnel and exits on 9"""
        answers = "\n".join(
            ["1", "n", "3", "web", "www", "web.local", "8080", "80", "", "n", "n", "5", "9"]
        )

        result = invoke("shell", input=answers + "\n")

        assert result.exit_code == 0, result.output
        assert "Tunnel 'web' added with ID 3" in result.output
        assert "ID: 3, Name: 'web', Host: web.local" in result.output
        assert json.loads(store_path.read_text())["3"]["timeout"] == 30

    def test_errors_do_not_end_shell(self, invoke):
        result = invoke("shell", input="2\n42\n0\n9\n")

        assert result.exit_code == 0
        assert "Error: Tunnel with ID 42 not found" in result.output
        assert "Unknown command, try again." in result.output
