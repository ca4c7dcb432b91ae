"""Tunnel registry keyed by tunnel ID."""

import logging
from collections.abc import Iterator, Mapping

from pydantic import BaseModel, Field

from ..exceptions import DuplicateIdError, TunnelNotFoundError
from .models import TunnelDefinition

logger = logging.getLogger(__name__)


class TunnelRegistry(BaseModel):
    """In-memory store for tunnel definitions with add/remove/query operations."""

    tunnels: dict[int, TunnelDefinition] = Field(
        default_factory=dict, description="Tunnel definitions by ID"
    )

    def __len__(self) -> int:
        return len(self.tunnels)

    def __contains__(self, tunnel_id: object) -> bool:
        return tunnel_id in self.tunnels

    def add_tunnel(self, tunnel: TunnelDefinition) -> None:
        """Add tunnel to registry.

        Args:
            tunnel: Tunnel definition to add

        Raises:
            DuplicateIdError: If tunnel ID already exists
        """
        if tunnel.id in self.tunnels:
            raise DuplicateIdError(tunnel.id)

        self.tunnels[tunnel.id] = tunnel
        logger.debug(f"Added tunnel {tunnel.id} to registry")

    def remove_tunnel(self, tunnel_id: int) -> TunnelDefinition:
        """Remove tunnel from registry.

        Args:
            tunnel_id: ID of tunnel to remove

        Returns:
            Removed tunnel

        Raises:
            TunnelNotFoundError: If tunnel not found
        """
        if tunnel_id not in self.tunnels:
            raise TunnelNotFoundError(tunnel_id)

        tunnel = self.tunnels.pop(tunnel_id)
        logger.debug(f"Removed tunnel {tunnel_id} from registry")
        return tunnel

    def get_tunnel(self, tunnel_id: int) -> TunnelDefinition | None:
        """Get tunnel by ID, or None if it is not registered."""
        return self.tunnels.get(tunnel_id)

    def iter_tunnels(self) -> Iterator[tuple[int, TunnelDefinition]]:
        """Yield (id, tunnel) pairs in registry order."""
        yield from self.tunnels.items()

    def list_tunnels(self, auto_connect: bool | None = None) -> list[TunnelDefinition]:
        """List tunnels with optional filtering.

        Args:
            auto_connect: Filter by auto-connect flag

        Returns:
            List of matching tunnels
        """
        tunnels = list(self.tunnels.values())

        if auto_connect is not None:
            tunnels = [t for t in tunnels if t.auto_connect == auto_connect]

        return tunnels

    def search(self, query: str) -> list[TunnelDefinition]:
        """Find tunnels whose name or hostname contains query."""
        return [t for t in self.tunnels.values() if t.matches(query)]

    def merged_with(self, incoming: Mapping[int, TunnelDefinition]) -> "TunnelRegistry":
        """Return a new registry with incoming tunnels replacing same-ID entries."""
        tunnels = dict(self.tunnels)
        tunnels.update(incoming)
        return TunnelRegistry(tunnels=tunnels)
