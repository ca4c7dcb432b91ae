"""SSH Tunnel Manager - a local registry of SSH tunnel definitions."""

__version__ = "0.1.0"

from .audit import AuditLog
from .common.logging import get_logger, setup_logging
from .config import ManagerSettings
from .connection import (
    AttemptOutcome,
    AttemptState,
    AutoConnectSweep,
    ConnectionAttempt,
    CredentialProvider,
    FailureKind,
    NoPromptCredentialProvider,
    PromptCredentialProvider,
    SSHConnector,
    StaticCredentialProvider,
)
from .exceptions import (
    AuditSinkError,
    CorruptStoreError,
    CredentialUnavailableError,
    DuplicateIdError,
    RegistryError,
    SourceNotFoundError,
    StoreError,
    StoreWriteError,
    TunnelManagerError,
    TunnelNotFoundError,
)
from .manager import TunnelManager
from .tunnels import (
    KeyAuth,
    PasswordAuth,
    TunnelDefinition,
    TunnelRecord,
    TunnelRegistry,
    TunnelStore,
)

__all__ = [
    # Manager
    "TunnelManager",
    "ManagerSettings",
    "AuditLog",
    # Tunnels
    "KeyAuth",
    "PasswordAuth",
    "TunnelDefinition",
    "TunnelRecord",
    "TunnelRegistry",
    "TunnelStore",
    # Connection
    "AttemptOutcome",
    "AttemptState",
    "AutoConnectSweep",
    "ConnectionAttempt",
    "CredentialProvider",
    "FailureKind",
    "NoPromptCredentialProvider",
    "PromptCredentialProvider",
    "SSHConnector",
    "StaticCredentialProvider",
    # Exceptions
    "TunnelManagerError",
    "RegistryError",
    "DuplicateIdError",
    "TunnelNotFoundError",
    "StoreError",
    "CorruptStoreError",
    "SourceNotFoundError",
    "StoreWriteError",
    "AuditSinkError",
    "CredentialUnavailableError",
    # Logging
    "get_logger",
    "setup_logging",
]
