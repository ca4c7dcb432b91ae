"""Connection attempts against registered tunnels."""

from .attempt import (
    AttemptOutcome,
    AttemptState,
    ConnectionAttempt,
    FailureKind,
    SSHConnector,
    load_private_key,
)
from .credentials import (
    CredentialProvider,
    NoPromptCredentialProvider,
    PromptCredentialProvider,
    StaticCredentialProvider,
)
from .sweep import AutoConnectSweep

__all__ = [
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
    "load_private_key",
]
