"""Single SSH connection attempt: TCP connect, handshake, authenticate.

An attempt moves strictly forward through its states and stops at the first
failed step. There is no retry inside an attempt.
"""

import socket
from collections.abc import Callable
from enum import Enum
from pathlib import Path

import paramiko
from pydantic import BaseModel, ConfigDict

from ..common.logging import get_logger
from ..exceptions import CredentialUnavailableError
from ..tunnels.models import SSH_PORT, KeyAuth, PasswordAuth, TunnelDefinition
from .credentials import CredentialProvider

logger = get_logger(__name__)

SocketFactory = Callable[..., socket.socket]
TransportFactory = Callable[[socket.socket], paramiko.Transport]
KeyLoader = Callable[[str], paramiko.PKey]


class AttemptState(str, Enum):
    """Connection attempt state enumeration."""

    IDLE = "idle"
    CONNECTING = "connecting"
    HANDSHAKING = "handshaking"
    AUTHENTICATING = "authenticating"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureKind(str, Enum):
    """Why an attempt ended in FAILED."""

    NETWORK = "network_error"
    HANDSHAKE = "handshake_error"
    MISSING_KEY_PATH = "missing_key_path"
    AUTH = "auth_error"


class AttemptOutcome(BaseModel):
    """Terminal result of a connection attempt."""

    model_config = ConfigDict(frozen=True)

    tunnel_id: int
    name: str
    hostname: str
    state: AttemptState
    failure: FailureKind | None = None
    detail: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == AttemptState.SUCCEEDED

    def describe(self) -> str:
        """One-line human readable summary."""
        if self.succeeded:
            return f"Connected to '{self.name}' ({self.hostname})"
        return (
            f"Connection to '{self.name}' ({self.hostname}) failed "
            f"[{self.failure.value if self.failure else 'unknown'}]: {self.detail}"
        )


class _StepFailed(Exception):
    def __init__(self, kind: FailureKind, detail: str):
        self.kind = kind
        self.detail = detail
        super().__init__(detail)


def load_private_key(path: str) -> paramiko.PKey:
    """Load a private key of any type paramiko supports."""
    return paramiko.PKey.from_path(Path(path).expanduser())


class ConnectionAttempt:
    """Drives one tunnel definition through connect, handshake and auth."""

    def __init__(
        self,
        tunnel: TunnelDefinition,
        credentials: CredentialProvider,
        connect_socket: SocketFactory = socket.create_connection,
        transport_factory: TransportFactory = paramiko.Transport,
        load_key: KeyLoader = load_private_key,
    ):
        self.tunnel = tunnel
        self.credentials = credentials
        self._connect_socket = connect_socket
        self._transport_factory = transport_factory
        self._load_key = load_key
        self._sock: socket.socket | None = None
        self._transport: paramiko.Transport | None = None
        self.state = AttemptState.IDLE
        self.history: list[AttemptState] = [AttemptState.IDLE]

    def _enter(self, state: AttemptState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug("attempt.state", tunnel_id=self.tunnel.id, state=state.value)

    def run(self) -> AttemptOutcome:
        """Run the attempt to a terminal state.

        Returns:
            Outcome carrying tunnel id, hostname and failure kind if any

        Raises:
            RuntimeError: If the attempt has already run
        """
        if self.state != AttemptState.IDLE:
            raise RuntimeError(f"Attempt for tunnel {self.tunnel.id} already ran")

        try:
            self._connect()
            self._handshake()
            self._authenticate()
        except _StepFailed as e:
            return self._finish(AttemptState.FAILED, e.kind, e.detail)
        finally:
            self._close()

        return self._finish(AttemptState.SUCCEEDED)

    def _connect(self) -> None:
        self._enter(AttemptState.CONNECTING)
        if not self.tunnel.hostname:
            raise _StepFailed(
                FailureKind.NETWORK, f"No hostname configured for tunnel {self.tunnel.id}"
            )
        try:
            self._sock = self._connect_socket(
                (self.tunnel.hostname, SSH_PORT), timeout=self.tunnel.timeout_seconds
            )
        except (OSError, ValueError) as e:
            raise _StepFailed(
                FailureKind.NETWORK, f"Cannot reach {self.tunnel.target}: {e}"
            ) from e

    def _handshake(self) -> None:
        self._enter(AttemptState.HANDSHAKING)
        assert self._sock is not None
        try:
            self._transport = self._transport_factory(self._sock)
            self._transport.start_client()
        except (paramiko.SSHException, EOFError, OSError) as e:
            raise _StepFailed(FailureKind.HANDSHAKE, f"SSH handshake failed: {e}") from e

    def _authenticate(self) -> None:
        self._enter(AttemptState.AUTHENTICATING)
        assert self._transport is not None
        credential = self.tunnel.credential
        username = self.tunnel.username

        try:
            if isinstance(credential, KeyAuth):
                key = self._key_for(credential)
                self._transport.auth_publickey(username, key)
            else:
                password = self._password_for(credential)
                self._transport.auth_password(username, password)
        except paramiko.AuthenticationException as e:
            raise _StepFailed(FailureKind.AUTH, f"Authentication rejected: {e}") from e
        except (paramiko.SSHException, EOFError, OSError) as e:
            raise _StepFailed(FailureKind.AUTH, f"Authentication failed: {e}") from e

        if not self._transport.is_authenticated():
            raise _StepFailed(FailureKind.AUTH, "Server requires further authentication")

    def _key_for(self, credential: KeyAuth) -> paramiko.PKey:
        if not credential.key_path:
            raise _StepFailed(
                FailureKind.MISSING_KEY_PATH,
                f"No SSH key path configured for tunnel {self.tunnel.id}",
            )
        try:
            return self._load_key(credential.key_path)
        except (OSError, ValueError, paramiko.SSHException) as e:
            raise _StepFailed(
                FailureKind.AUTH, f"Cannot load key '{credential.key_path}': {e}"
            ) from e

    def _password_for(self, credential: PasswordAuth) -> str:
        if credential.saved_password is not None:
            return credential.saved_password
        try:
            return self.credentials.get_password(self.tunnel)
        except CredentialUnavailableError as e:
            raise _StepFailed(FailureKind.AUTH, str(e)) from e

    def _close(self) -> None:
        if self._transport is not None:
            self._transport.close()
        elif self._sock is not None:
            self._sock.close()

    def _finish(
        self,
        state: AttemptState,
        failure: FailureKind | None = None,
        detail: str | None = None,
    ) -> AttemptOutcome:
        self._enter(state)
        outcome = AttemptOutcome(
            tunnel_id=self.tunnel.id,
            name=self.tunnel.name,
            hostname=self.tunnel.hostname,
            state=state,
            failure=failure,
            detail=detail,
        )
        if outcome.succeeded:
            logger.info(
                "connect.succeeded",
                tunnel_id=self.tunnel.id,
                hostname=self.tunnel.hostname,
            )
        else:
            logger.warning(
                "connect.failed",
                tunnel_id=self.tunnel.id,
                hostname=self.tunnel.hostname,
                failure=failure.value if failure else None,
                detail=detail,
            )
        return outcome


class SSHConnector:
    """Creates and runs connection attempts with shared collaborators."""

    def __init__(
        self,
        credentials: CredentialProvider,
        connect_socket: SocketFactory = socket.create_connection,
        transport_factory: TransportFactory = paramiko.Transport,
        load_key: KeyLoader = load_private_key,
    ):
        self.credentials = credentials
        self._connect_socket = connect_socket
        self._transport_factory = transport_factory
        self._load_key = load_key

    def attempt(self, tunnel: TunnelDefinition) -> ConnectionAttempt:
        return ConnectionAttempt(
            tunnel,
            self.credentials,
            connect_socket=self._connect_socket,
            transport_factory=self._transport_factory,
            load_key=self._load_key,
        )

    def connect(self, tunnel: TunnelDefinition) -> AttemptOutcome:
        """Run one attempt for tunnel and return its outcome."""
        return self.attempt(tunnel).run()
