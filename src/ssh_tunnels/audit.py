"""Append-only audit log of tunnel operations and connection outcomes."""

from pathlib import Path
from typing import Any

import structlog

from .exceptions import AuditSinkError


class AuditLog:
    """Writes one key=value line per event to an append-only file.

    The file is opened for each write and closed right after, so a crash
    never leaves a buffered line behind.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._stamp = structlog.processors.TimeStamper(fmt="iso", utc=False)
        self._render = structlog.processors.KeyValueRenderer(
            key_order=["timestamp", "event"], drop_missing=True
        )
        try:
            with self.path.open("a", encoding="utf-8"):
                pass
        except OSError as e:
            raise AuditSinkError(f"Cannot open audit log '{self.path}': {e}") from e

    def format(self, event: str, **fields: Any) -> str:
        event_dict: dict[str, Any] = {"event": event}
        event_dict.update({k: v for k, v in fields.items() if v is not None})
        event_dict = self._stamp(None, "info", event_dict)
        return self._render(None, "info", event_dict)

    def record(self, event: str, **fields: Any) -> str:
        """Append one event line.

        Args:
            event: Event name, e.g. ``tunnel.added``
            **fields: Context such as tunnel_id, hostname, outcome

        Returns:
            The line written
        """
        line = self.format(event, **fields)
        try:
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        except OSError as e:
            raise AuditSinkError(f"Cannot write audit log '{self.path}': {e}") from e
        return line
