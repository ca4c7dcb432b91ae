"""JSON file storage for tunnel definitions."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from ..exceptions import CorruptStoreError, SourceNotFoundError, StoreWriteError
from .models import TunnelDefinition, TunnelRecord

logger = logging.getLogger(__name__)

_RECORDS = TypeAdapter(dict[int, TunnelRecord])


def parse_tunnels(text: str, source: str) -> dict[int, TunnelDefinition]:
    """Parse a stored mapping of tunnel records.

    Args:
        text: JSON document keyed by tunnel ID
        source: Path or label used in error messages

    Returns:
        Tunnel definitions by ID

    Raises:
        CorruptStoreError: If the document is not a valid mapping of records
    """
    try:
        records = _RECORDS.validate_json(text)
        tunnels = {key: record.to_definition() for key, record in records.items()}
    except ValidationError as e:
        raise CorruptStoreError(
            f"Invalid tunnel data in '{source}': {e.error_count()} error(s)\n{e}",
            path=source,
        ) from e

    for key, tunnel in tunnels.items():
        if key != tunnel.id:
            raise CorruptStoreError(
                f"Invalid tunnel data in '{source}': key {key} holds tunnel ID {tunnel.id}",
                path=source,
            )

    return tunnels


def dump_tunnels(tunnels: dict[int, TunnelDefinition], pretty: bool = False) -> str:
    """Serialize tunnels to the stored JSON mapping."""
    data: dict[str, Any] = {
        str(tunnel_id): TunnelRecord.from_definition(tunnel).to_json_dict()
        for tunnel_id, tunnel in tunnels.items()
    }
    if pretty:
        return json.dumps(data, indent=2, ensure_ascii=False)
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def atomic_write_text(path: Path, text: str) -> None:
    """Write text by replacing the target with a fully written temp file.

    Raises:
        StoreWriteError: If any step fails; the target is left unchanged
    """
    tmp_name: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise StoreWriteError(f"Failed to write '{path}': {e}", path=str(path)) from e


class TunnelStore:
    """Reads and writes the full tunnel mapping as one JSON document."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def read(self) -> dict[int, TunnelDefinition] | None:
        """Read stored tunnels.

        Returns:
            Tunnels by ID, or None if the file does not exist

        Raises:
            CorruptStoreError: If the file exists but cannot be parsed
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug(f"No tunnel file at {self.path}")
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise CorruptStoreError(
                f"Failed to read '{self.path}': {e}", path=str(self.path)
            ) from e

        return parse_tunnels(text, str(self.path))

    def write(self, tunnels: dict[int, TunnelDefinition], pretty: bool = False) -> None:
        """Replace stored tunnels with the given mapping.

        Raises:
            StoreWriteError: If the file cannot be written
        """
        atomic_write_text(self.path, dump_tunnels(tunnels, pretty=pretty))
        logger.debug(f"Wrote {len(tunnels)} tunnel(s) to {self.path}")

    @staticmethod
    def read_source(path: str | Path) -> dict[int, TunnelDefinition]:
        """Read tunnels from an import file.

        Raises:
            SourceNotFoundError: If the file cannot be read
            CorruptStoreError: If the file cannot be parsed
        """
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SourceNotFoundError(
                f"Failed to read import file '{path}': {e}", path=str(path)
            ) from e

        return parse_tunnels(text, str(path))

    @staticmethod
    def write_export(path: str | Path, tunnels: dict[int, TunnelDefinition]) -> None:
        """Write tunnels to an export file in indented form.

        Raises:
            StoreWriteError: If the file cannot be written
        """
        atomic_write_text(Path(path), dump_tunnels(tunnels, pretty=True))
