"""Password sources for connection attempts without a saved password."""

from typing import Protocol

import click

from ..exceptions import CredentialUnavailableError
from ..tunnels.models import TunnelDefinition


class CredentialProvider(Protocol):
    """Supplies a password for a tunnel at connect time."""

    def get_password(self, tunnel: TunnelDefinition) -> str:
        ...


class PromptCredentialProvider:
    """Asks the operator for the password on the terminal."""

    def get_password(self, tunnel: TunnelDefinition) -> str:
        try:
            return click.prompt(
                f"Password for {tunnel.username}@{tunnel.hostname}",
                hide_input=True,
                default="",
                show_default=False,
            )
        except click.Abort as e:
            raise CredentialUnavailableError(
                f"Password prompt for tunnel {tunnel.id} aborted"
            ) from e


class StaticCredentialProvider:
    """Returns passwords from a fixed mapping of tunnel ID to password."""

    def __init__(self, passwords: dict[int, str] | None = None):
        self.passwords = dict(passwords or {})
        self.requested: list[int] = []

    def get_password(self, tunnel: TunnelDefinition) -> str:
        self.requested.append(tunnel.id)
        try:
            return self.passwords[tunnel.id]
        except KeyError:
            raise CredentialUnavailableError(
                f"No password available for tunnel {tunnel.id}"
            ) from None


class NoPromptCredentialProvider:
    """Refuses to supply passwords; used for non-interactive runs."""

    def get_password(self, tunnel: TunnelDefinition) -> str:
        raise CredentialUnavailableError(
            f"Tunnel {tunnel.id} has no saved password and prompting is disabled"
        )
