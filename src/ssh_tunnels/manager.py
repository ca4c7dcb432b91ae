"""Tunnel manager: registry operations with persistence, audit and connect."""

from collections.abc import Iterator
from pathlib import Path

from .audit import AuditLog
from .common.logging import get_logger
from .config import ManagerSettings
from .connection.attempt import AttemptOutcome, SSHConnector
from .connection.credentials import (
    CredentialProvider,
    NoPromptCredentialProvider,
    PromptCredentialProvider,
)
from .connection.sweep import AutoConnectSweep
from .exceptions import (
    AuditSinkError,
    CorruptStoreError,
    DuplicateIdError,
    StoreError,
    TunnelNotFoundError,
)
from .tunnels.models import TunnelDefinition
from .tunnels.registry import TunnelRegistry
from .tunnels.storage import TunnelStore

logger = get_logger(__name__)


class TunnelManager:
    """Owns the tunnel registry and every operation that reads or changes it.

    Each change is written to the tunnel file before it becomes visible in
    the live registry, so a failed write leaves both untouched.
    """

    def __init__(
        self,
        settings: ManagerSettings | None = None,
        store: TunnelStore | None = None,
        audit: AuditLog | None = None,
        connector: SSHConnector | None = None,
    ):
        """Initialize tunnel manager.

        Args:
            settings: File locations and startup behavior
            store: Tunnel file storage (built from settings if None)
            audit: Audit log (built from settings if None)
            connector: SSH connector (prompting per settings if None)

        A write to the audit log that fails after it was opened is logged
        and does not undo or fail the operation being recorded.

        Raises:
            AuditSinkError: If the audit log cannot be opened
        """
        self.settings = settings or ManagerSettings()
        self.store = store or TunnelStore(self.settings.store_path)
        self.audit = audit or AuditLog(self.settings.audit_log_path)
        self.connector = connector or SSHConnector(self._default_credentials())
        self.registry = TunnelRegistry()

    def _audit(self, event: str, **fields) -> None:
        try:
            self.audit.record(event, **fields)
        except AuditSinkError as e:
            logger.error("audit.write_failed", audit_event=event, error=str(e))

    def _default_credentials(self) -> CredentialProvider:
        if self.settings.prompt_for_passwords:
            return PromptCredentialProvider()
        return NoPromptCredentialProvider()

    def start(self) -> list[AttemptOutcome]:
        """Load tunnels, then run the auto-connect sweep if enabled.

        Raises:
            CorruptStoreError: If the tunnel file cannot be parsed
        """
        self.load()
        if not self.settings.auto_connect_on_start:
            return []
        return self.auto_connect()

    def load(self) -> int:
        """Replace the live registry with the tunnel file contents.

        Returns:
            Number of tunnels loaded

        Raises:
            CorruptStoreError: If the file exists but cannot be parsed
        """
        try:
            tunnels = self.store.read()
        except CorruptStoreError as e:
            self._audit("tunnels.load_failed", path=str(self.store.path), error=str(e))
            logger.error("tunnels.load_failed", path=str(self.store.path), error=str(e))
            raise

        if tunnels is None:
            logger.info("tunnels.store_missing", path=str(self.store.path))
            tunnels = {}

        self.registry = TunnelRegistry(tunnels=tunnels)
        self._audit("tunnels.loaded", count=len(tunnels), path=str(self.store.path))
        logger.info("tunnels.loaded", count=len(tunnels))
        return len(tunnels)

    def save(self) -> None:
        """Write the full registry to the tunnel file.

        Raises:
            StoreWriteError: If the file cannot be written
        """
        self.store.write(self.registry.tunnels)
        logger.info("tunnels.saved", count=len(self.registry), path=str(self.store.path))

    def _commit(self, candidate: TunnelRegistry) -> None:
        self.store.write(candidate.tunnels)
        self.registry = candidate
        logger.info("tunnels.saved", count=len(candidate), path=str(self.store.path))

    def _candidate(self) -> TunnelRegistry:
        return TunnelRegistry(tunnels=dict(self.registry.tunnels))

    def add(self, tunnel: TunnelDefinition) -> TunnelDefinition:
        """Register a new tunnel and save.

        Raises:
            DuplicateIdError: If the ID is already registered
            StoreWriteError: If saving fails
        """
        candidate = self._candidate()
        try:
            candidate.add_tunnel(tunnel)
        except DuplicateIdError:
            self._audit("tunnel.add_rejected", tunnel_id=tunnel.id, reason="duplicate id")
            logger.warning("tunnel.add_rejected", tunnel_id=tunnel.id)
            raise

        self._commit(candidate)
        self._audit(
            "tunnel.added",
            tunnel_id=tunnel.id,
            name=tunnel.name,
            hostname=tunnel.hostname,
            auth=tunnel.auth_label,
        )
        logger.info("tunnel.added", tunnel_id=tunnel.id, name=tunnel.name)
        return tunnel

    def remove(self, tunnel_id: int) -> TunnelDefinition:
        """Delete a tunnel and save.

        Raises:
            TunnelNotFoundError: If the ID is not registered
            StoreWriteError: If saving fails
        """
        candidate = self._candidate()
        try:
            removed = candidate.remove_tunnel(tunnel_id)
        except TunnelNotFoundError:
            self._audit("tunnel.remove_rejected", tunnel_id=tunnel_id, reason="not found")
            logger.warning("tunnel.remove_rejected", tunnel_id=tunnel_id)
            raise

        self._commit(candidate)
        self._audit(
            "tunnel.removed",
            tunnel_id=tunnel_id,
            name=removed.name,
            hostname=removed.hostname,
        )
        logger.info("tunnel.removed", tunnel_id=tunnel_id)
        return removed

    def get(self, tunnel_id: int) -> TunnelDefinition | None:
        return self.registry.get_tunnel(tunnel_id)

    def list_tunnels(self) -> Iterator[tuple[int, TunnelDefinition]]:
        """Yield (id, tunnel) pairs; order is not stable across reloads."""
        return self.registry.iter_tunnels()

    def search(self, query: str) -> list[TunnelDefinition]:
        """Find tunnels whose name or hostname contains query.

        An empty result is not an error.
        """
        found = self.registry.search(query)
        if not found:
            logger.info("search.no_matches", query=query)
        return found

    def connect(self, tunnel_id: int) -> AttemptOutcome:
        """Run one connection attempt for a registered tunnel.

        Raises:
            TunnelNotFoundError: If the ID is not registered
        """
        tunnel = self.registry.get_tunnel(tunnel_id)
        if tunnel is None:
            self._audit("connect.unknown_tunnel", tunnel_id=tunnel_id)
            raise TunnelNotFoundError(tunnel_id)

        outcome = self.connector.connect(tunnel)
        self._record_outcome(outcome)
        return outcome

    def connect_all(self) -> list[AttemptOutcome]:
        """Attempt every registered tunnel in turn."""
        return self._sweep(only_auto_connect=False)

    def auto_connect(self) -> list[AttemptOutcome]:
        """Attempt every tunnel flagged for auto-connect in turn."""
        return self._sweep(only_auto_connect=True)

    def _sweep(self, only_auto_connect: bool) -> list[AttemptOutcome]:
        sweep = AutoConnectSweep(
            self.registry,
            self.connector,
            on_outcome=self._record_outcome,
            only_auto_connect=only_auto_connect,
        )
        return sweep.run()

    def _record_outcome(self, outcome: AttemptOutcome) -> None:
        if outcome.succeeded:
            self._audit(
                "connect.succeeded",
                tunnel_id=outcome.tunnel_id,
                name=outcome.name,
                hostname=outcome.hostname,
            )
        else:
            self._audit(
                "connect.failed",
                tunnel_id=outcome.tunnel_id,
                name=outcome.name,
                hostname=outcome.hostname,
                failure=outcome.failure.value if outcome.failure else None,
                detail=outcome.detail,
            )

    def import_from(self, source: str | Path) -> list[int]:
        """Merge tunnels from a file, replacing entries with the same ID.

        Returns:
            IDs of the imported tunnels

        Raises:
            SourceNotFoundError: If the file cannot be read
            CorruptStoreError: If the file cannot be parsed
            StoreWriteError: If saving the merged registry fails
        """
        try:
            incoming = self.store.read_source(source)
            candidate = self.registry.merged_with(incoming)
            self._commit(candidate)
        except StoreError as e:
            self._audit("tunnels.import_failed", source=str(source), error=str(e))
            logger.error("tunnels.import_failed", source=str(source), error=str(e))
            raise

        for tunnel_id, tunnel in incoming.items():
            self._audit(
                "tunnel.imported",
                tunnel_id=tunnel_id,
                name=tunnel.name,
                hostname=tunnel.hostname,
            )
        self._audit("tunnels.imported", count=len(incoming), source=str(source))
        logger.info("tunnels.imported", count=len(incoming), source=str(source))
        return list(incoming)

    def export_to(self, destination: str | Path) -> int:
        """Write all tunnels to destination in indented form.

        Returns:
            Number of tunnels exported

        Raises:
            StoreWriteError: If the file cannot be written
        """
        try:
            self.store.write_export(destination, self.registry.tunnels)
        except StoreError as e:
            self._audit("tunnels.export_failed", destination=str(destination), error=str(e))
            logger.error("tunnels.export_failed", destination=str(destination), error=str(e))
            raise

        self._audit(
            "tunnels.exported", count=len(self.registry), destination=str(destination)
        )
        logger.info("tunnels.exported", count=len(self.registry), destination=str(destination))
        return len(self.registry)
