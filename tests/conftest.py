"""Shared pytest fixtures for tunnel manager tests."""

from unittest.mock import Mock

import paramiko
import pytest

from ssh_tunnels.audit import AuditLog
from ssh_tunnels.config import ManagerSettings
from ssh_tunnels.connection.attempt import SSHConnector
from ssh_tunnels.connection.credentials import StaticCredentialProvider
from ssh_tunnels.manager import TunnelManager
from ssh_tunnels.tunnels.models import KeyAuth, PasswordAuth, TunnelDefinition
from ssh_tunnels.tunnels.storage import TunnelStore


@pytest.fixture
def make_tunnel():
    """Factory for tunnel definitions with sensible defaults.

    Returns:
        Callable: builds a TunnelDefinition, keyword overrides allowed
    """

    def _make(tunnel_id: int = 1, **overrides) -> TunnelDefinition:
        fields = {
            "id": tunnel_id,
            "name": f"tunnel-{tunnel_id}",
            "username": "deploy",
            "hostname": f"10.0.0.{tunnel_id}",
            "local_port": 5432,
            "remote_port": 5432,
            "credential": PasswordAuth(saved_password="secret"),
        }
        fields.update(overrides)
        return TunnelDefinition(**fields)

    return _make


@pytest.fixture
def key_tunnel(make_tunnel):
    return make_tunnel(7, name="bastion", credential=KeyAuth(key_path="~/.ssh/id_ed25519"))


@pytest.fixture
def mock_socket():
    """Mock socket returned by the connect factory."""
    return Mock(name="socket")


@pytest.fixture
def mock_transport():
    """Mock paramiko transport that accepts any authentication.

    Returns:
        Mock: transport with handshake and auth methods
    """
    transport = Mock(spec=paramiko.Transport)
    transport.start_client.return_value = None
    transport.auth_password.return_value = []
    transport.auth_publickey.return_value = []
    transport.is_authenticated.return_value = True
    return transport


@pytest.fixture
def connect_socket(mock_socket):
    return Mock(name="create_connection", return_value=mock_socket)


@pytest.fixture
def transport_factory(mock_transport):
    return Mock(name="Transport", return_value=mock_transport)


@pytest.fixture
def load_key():
    return Mock(name="load_key", return_value=Mock(spec=paramiko.PKey))


@pytest.fixture
def credentials():
    return StaticCredentialProvider({1: "typed-in"})


@pytest.fixture
def connector(credentials, connect_socket, transport_factory, load_key):
    """SSH connector wired to mock socket/transport/key factories."""
    return SSHConnector(
        credentials,
        connect_socket=connect_socket,
        transport_factory=transport_factory,
        load_key=load_key,
    )


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "tunnels.json"


@pytest.fixture
def audit(tmp_path):
    return AuditLog(tmp_path / "audit.log")


@pytest.fixture
def settings(store_path, tmp_path):
    return ManagerSettings(
        store_path=str(store_path),
        audit_log_path=str(tmp_path / "audit.log"),
        prompt_for_passwords=False,
    )


@pytest.fixture
def manager(settings, store_path, audit, connector):
    """Tunnel manager backed by a temp file and mock SSH connector."""
    return TunnelManager(
        settings, store=TunnelStore(store_path), audit=audit, connector=connector
    )


@pytest.fixture
def audit_lines(audit):
    """Read back the lines written to the audit log."""

    def _lines() -> list[str]:
        return audit.path.read_text(encoding="utf-8").splitlines()

    return _lines
