"""Suspicious activity tracking and flag escalation.

Three independent signals feed one terminal transition:

- repeated failures per client key (user id or normalized IP)
- traffic spikes per IP within a short window
- abnormally regular, rapid-fire requests per IP

The first threshold breach flags the key and immediately blocks it. Flags
are permanent for the process and keep their first reason; blocks can be
lifted by an admin without clearing the flag.
"""

import logging
import threading
import time
from collections import deque
from datetime import datetime, timezone

from pydantic import ValidationError as PydanticValidationError

from gatekeeper.errors import PersistenceWriteError
from gatekeeper.models.suspicious import BlockInfo, FlagInfo, FlagReason
from gatekeeper.services.blocks import BlockStore
from gatekeeper.services.keys import normalize_ip, resolve_client_key
from gatekeeper.services.locks import StripedLock
from gatekeeper.storage import StateStore, load_or_empty

logger = logging.getLogger(__name__)

# The abnormal-pattern check compares the newest timestamp with the third
# most recent one.
PATTERN_SPAN = 3


class SuspiciousActivityTracker:
    """Service tracking failures, spikes and patterns per client."""

    def __init__(
        self,
        failure_store: StateStore,
        flag_store: StateStore,
        blocks: BlockStore,
        *,
        max_failures: int = 5,
        spike_threshold: int = 20,
        spike_window_ms: int = 10_000,
        pattern_interval_ms: int = 100,
    ):
        self.failure_store = failure_store
        self.flag_store = flag_store
        self.blocks = blocks
        self.max_failures = max_failures
        self.spike_threshold = spike_threshold
        self.spike_window_ms = spike_window_ms
        self.pattern_interval_ms = pattern_interval_ms

        self._keys = StripedLock()
        self._flags_lock = threading.Lock()
        self._failures: dict[str, int] = self._load_failures()
        self._flags: dict[str, FlagInfo] = self._load_flags()
        self._windows: dict[str, deque[float]] = {}

    # --- Startup ---

    def _load_failures(self) -> dict[str, int]:
        data = load_or_empty(self.failure_store)
        if not all(isinstance(count, int) and not isinstance(count, bool) for count in data.values()):
            logger.warning("Starting with no failure counters, invalid counter data")
            return {}
        return dict(data)

    def _load_flags(self) -> dict[str, FlagInfo]:
        data = load_or_empty(self.flag_store)
        try:
            return {key: FlagInfo.model_validate(info) for key, info in data.items()}
        except PydanticValidationError as exc:
            logger.warning("Starting with no flags, invalid flag data: %s", exc)
            return {}

    # --- Persistence (best effort) ---

    def _persist_failures(self) -> None:
        try:
            with self.failure_store.lock:
                self.failure_store.save(self._failures.copy())
        except PersistenceWriteError as exc:
            logger.error("Failed to persist failure counters: %s", exc.message)

    def _persist_flags(self) -> None:
        try:
            with self.flag_store.lock:
                with self._flags_lock:
                    snapshot = {key: info.model_dump(mode="json") for key, info in self._flags.items()}
                self.flag_store.save(snapshot)
        except PersistenceWriteError as exc:
            logger.error("Failed to persist flags: %s", exc.message)

    # --- Signals ---

    def track_failure(self, ip: str, user_id: str | None = None) -> int:
        """
        Count a failed request for the client.

        Flags the client with ``repeated_failures`` once the count reaches
        ``max_failures``. Returns the new count.
        """
        key = resolve_client_key(ip, user_id)
        with self._keys.hold(key):
            count = self._failures.get(key, 0) + 1
            self._failures[key] = count

        self._persist_failures()
        if count >= self.max_failures:
            self.flag(key, FlagReason.REPEATED_FAILURES)
        return count

    def track_request(self, ip: str) -> None:
        """Record a request timestamp for spike and pattern detection."""
        key = normalize_ip(ip)
        with self._keys.hold(key):
            now = time.time() * 1000
            times = self._windows.get(key)
            if times is None:
                times = self._windows[key] = deque()
            while times and now - times[0] >= self.spike_window_ms:
                times.popleft()
            times.append(now)

            spike = len(times) >= self.spike_threshold
            pattern = (
                len(times) > PATTERN_SPAN
                and times[-1] - times[-PATTERN_SPAN] < self.pattern_interval_ms * PATTERN_SPAN
            )

        if spike:
            self.flag(key, FlagReason.TRAFFIC_SPIKE)
        if pattern:
            self.flag(key, FlagReason.ABNORMAL_PATTERN)

    # --- Escalation ---

    def flag(self, key: str, reason: FlagReason) -> bool:
        """
        Flag a key and block it.

        A key is flagged at most once; later calls keep the first reason and
        do nothing. Returns True if a new flag was created.
        """
        with self._flags_lock:
            if key in self._flags:
                return False
            self._flags[key] = FlagInfo(reason=reason, timestamp=datetime.now(timezone.utc))

        logger.warning("Flagged %s as suspicious (%s)", key, reason.value)
        self._persist_flags()
        self.blocks.block(key, reason)
        return True

    def unblock(self, key: str) -> bool:
        """Lift a block. The flag and failure counter are kept."""
        return self.blocks.unblock(key)

    # --- Queries ---

    def is_flagged(self, ip: str, user_id: str | None = None) -> bool:
        return resolve_client_key(ip, user_id) in self._flags

    def get_flag_info(self, ip: str, user_id: str | None = None) -> FlagInfo | None:
        return self._flags.get(resolve_client_key(ip, user_id))

    def is_blocked(self, ip: str, user_id: str | None = None) -> bool:
        return self.blocks.is_blocked(resolve_client_key(ip, user_id))

    def get_block_info(self, ip: str, user_id: str | None = None) -> BlockInfo | None:
        return self.blocks.get(resolve_client_key(ip, user_id))

    def failure_count(self, key: str) -> int:
        return self._failures.get(key, 0)

    def flags(self) -> dict[str, FlagInfo]:
        with self._flags_lock:
            return dict(self._flags)

    def cleanup(self) -> int:
        """Drop request windows with no timestamps inside the spike window."""
        removed = 0
        for key in list(self._windows):
            with self._keys.hold(key):
                times = self._windows.get(key)
                if times is not None and (not times or time.time() * 1000 - times[-1] >= self.spike_window_ms):
                    del self._windows[key]
                    removed += 1
        return removed
