"""Tunnel definitions, registry and file storage."""

from .models import (
    DEFAULT_TIMEOUT,
    SSH_PORT,
    AuthCredential,
    KeyAuth,
    PasswordAuth,
    TunnelDefinition,
    TunnelRecord,
)
from .registry import TunnelRegistry
from .storage import TunnelStore, dump_tunnels, parse_tunnels

__all__ = [
    "DEFAULT_TIMEOUT",
    "SSH_PORT",
    "AuthCredential",
    "KeyAuth",
    "PasswordAuth",
    "TunnelDefinition",
    "TunnelRecord",
    "TunnelRegistry",
    "TunnelStore",
    "dump_tunnels",
    "parse_tunnels",
]
