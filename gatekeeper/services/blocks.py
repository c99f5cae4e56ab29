"""Block store: keys denied by the block gate."""

import logging
import threading
from datetime import datetime, timezone

from pydantic import ValidationError as PydanticValidationError

from gatekeeper.errors import PersistenceWriteError
from gatekeeper.models.suspicious import BlockInfo, FlagReason
from gatekeeper.storage import StateStore, load_or_empty

logger = logging.getLogger(__name__)


class BlockStore:
    """
    Blocked keys with reason and timestamp.

    Entries are created by flag escalation and removed only by an explicit
    unblock.
    """

    def __init__(self, store: StateStore):
        self.store = store
        self._lock = threading.Lock()
        self._blocked: dict[str, BlockInfo] = self._load()

    def _load(self) -> dict[str, BlockInfo]:
        data = load_or_empty(self.store)
        try:
            return {key: BlockInfo.model_validate(info) for key, info in data.items()}
        except PydanticValidationError as exc:
            logger.warning("Starting with no blocks, invalid block data: %s", exc)
            return {}

    def _persist(self) -> None:
        with self.store.lock:
            with self._lock:
                snapshot = {key: info.model_dump(mode="json") for key, info in self._blocked.items()}
            self.store.save(snapshot)

    def block(self, key: str, reason: FlagReason) -> BlockInfo:
        """Block a key. Write failures are logged; the in-memory block still applies."""
        info = BlockInfo(reason=reason, timestamp=datetime.now(timezone.utc))
        with self._lock:
            self._blocked[key] = info
        logger.warning("Blocked %s (%s)", key, reason.value)

        try:
            self._persist()
        except PersistenceWriteError as exc:
            logger.error("Failed to persist block for %s: %s", key, exc.message)
        return info

    def unblock(self, key: str) -> bool:
        """
        Remove a block.

        If the block table cannot be written the block is restored.

        Returns:
            True if the key was blocked

        Raises:
            PersistenceWriteError: the block table could not be written
        """
        with self._lock:
            removed = self._blocked.pop(key, None)
        if removed is None:
            return False

        try:
            self._persist()
        except PersistenceWriteError:
            with self._lock:
                self._blocked.setdefault(key, removed)
            raise
        logger.info("Unblocked %s", key)
        return True

    def is_blocked(self, key: str) -> bool:
        return key in self._blocked

    def get(self, key: str) -> BlockInfo | None:
        return self._blocked.get(key)

    def all(self) -> dict[str, BlockInfo]:
        with self._lock:
            return dict(self._blocked)
