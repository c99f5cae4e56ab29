"""Whole-file JSON state stores.

Each store holds one logical table (a JSON object) in one file. The table is
read fully at startup and rewritten fully on every mutation.
"""

import json
import logging
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

from gatekeeper.errors import PersistenceReadError, PersistenceWriteError

logger = logging.getLogger(__name__)

RATE_RULES_FILE = "rate-rules.json"
FAILURES_FILE = "failures.json"
FLAGS_FILE = "suspicious.json"
BLOCKS_FILE = "blocked.json"


class StateStore(Protocol):
    """Load/save interface for a persisted table."""

    lock: threading.RLock

    def load(self) -> dict[str, Any]: ...

    def save(self, data: Mapping[str, Any]) -> None: ...


class JsonFileStore:
    """
    Store a mapping as a pretty-printed JSON object in a single file.

    Writers are serialized through ``lock``. Callers that snapshot shared
    state should hold the lock while snapshotting so the last write always
    carries the freshest state.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.lock = threading.RLock()

    def load(self) -> dict[str, Any]:
        """Read the table. A missing file is an empty table."""
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise PersistenceReadError(f"Cannot read {self.path}: {exc}", str(self.path)) from exc
        if not isinstance(data, dict):
            raise PersistenceReadError(f"{self.path} does not contain a JSON object", str(self.path))
        return data

    def save(self, data: Mapping[str, Any]) -> None:
        """Overwrite the table with ``data``."""
        with self.lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text(json.dumps(dict(data), indent=2), encoding="utf-8")
            except (OSError, TypeError, ValueError) as exc:
                raise PersistenceWriteError(
                    f"Cannot write {self.path}: {exc}", str(self.path)
                ) from exc


def load_or_empty(store: StateStore) -> dict[str, Any]:
    """Load a table, treating any read failure as "no prior state"."""
    try:
        return store.load()
    except PersistenceReadError as exc:
        logger.warning("Starting with empty state: %s", exc.message)
        return {}
