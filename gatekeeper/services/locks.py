"""Per-key locking for in-memory counters."""

import threading
import zlib
from collections.abc import Iterator
from contextlib import contextmanager

DEFAULT_STRIPES = 64


class StripedLock:
    """
    Fixed pool of locks selected by key hash.

    Two callers touching the same key always share a lock. Unrelated keys
    usually land on different stripes, and the pool never grows.
    """

    def __init__(self, stripes: int = DEFAULT_STRIPES):
        self._locks = [threading.Lock() for _ in range(max(1, stripes))]

    def _lock_for(self, key: str) -> threading.Lock:
        return self._locks[zlib.crc32(key.encode("utf-8")) % len(self._locks)]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold the lock guarding ``key``."""
        with self._lock_for(key):
            yield
