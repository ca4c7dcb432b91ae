"""Sequential connection sweep over registered tunnels."""

from collections.abc import Callable

from ..common.logging import get_logger
from ..tunnels.models import TunnelDefinition
from ..tunnels.registry import TunnelRegistry
from .attempt import AttemptOutcome, SSHConnector

logger = get_logger(__name__)

OutcomeCallback = Callable[[AttemptOutcome], None]


class AutoConnectSweep:
    """Runs one connection attempt per selected tunnel, one after another.

    A failed attempt is reported through ``on_outcome`` and the sweep moves
    on to the next tunnel.
    """

    def __init__(
        self,
        registry: TunnelRegistry,
        connector: SSHConnector,
        on_outcome: OutcomeCallback | None = None,
        only_auto_connect: bool = True,
    ):
        self.registry = registry
        self.connector = connector
        self.on_outcome = on_outcome
        self.only_auto_connect = only_auto_connect

    def select(self) -> list[TunnelDefinition]:
        if self.only_auto_connect:
            return self.registry.list_tunnels(auto_connect=True)
        return self.registry.list_tunnels()

    def run(self) -> list[AttemptOutcome]:
        """Attempt every selected tunnel in registry order.

        Returns:
            Outcomes in the order the attempts ran
        """
        tunnels = self.select()
        logger.info(
            "sweep.started", tunnels=len(tunnels), auto_connect=self.only_auto_connect
        )

        outcomes: list[AttemptOutcome] = []
        for tunnel in tunnels:
            logger.info("sweep.connecting", tunnel_id=tunnel.id, name=tunnel.name)
            outcome = self.connector.connect(tunnel)
            outcomes.append(outcome)
            if self.on_outcome is not None:
                self.on_outcome(outcome)

        failed = sum(1 for o in outcomes if not o.succeeded)
        logger.info("sweep.finished", attempted=len(outcomes), failed=failed)
        return outcomes
