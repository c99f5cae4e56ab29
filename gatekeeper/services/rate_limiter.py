"""Fixed-window rate limiter keyed by client and endpoint.

A counter per ``client:endpoint`` key is reset at fixed window boundaries
rather than sliding, so up to twice the limit can pass across a boundary.
Memory and check cost stay O(1) per key.
"""

import logging
import math
import time

from pydantic import BaseModel

from gatekeeper.models.rate_limit import RateRecord
from gatekeeper.services.locks import StripedLock
from gatekeeper.services.rules import RateRuleStore

logger = logging.getLogger(__name__)


def now_ms() -> float:
    return time.time() * 1000


class RateLimitResult(BaseModel):
    """Outcome of a single rate-limit check."""

    allowed: bool
    limit: int
    remaining: int
    window_ms: int
    reset_at: float  # epoch milliseconds

    @property
    def reset_seconds(self) -> int:
        """Reset instant as Unix seconds, rounded up."""
        return math.ceil(self.reset_at / 1000)


class FixedWindowRateLimiter:
    """In-memory fixed-window limiter using rules from a :class:`RateRuleStore`."""

    def __init__(self, rules: RateRuleStore):
        self.rules = rules
        self._records: dict[str, RateRecord] = {}
        self._locks = StripedLock()

    @staticmethod
    def make_key(client_key: str, endpoint: str) -> str:
        return f"{client_key}:{endpoint}"

    def check(self, client_key: str, endpoint: str) -> RateLimitResult:
        """
        Count a request and decide whether it is allowed.

        A denied request does not change the stored count.
        """
        key = self.make_key(client_key, endpoint)
        rule = self.rules.get_rule(endpoint)

        with self._locks.hold(key):
            now = now_ms()
            record = self._records.get(key)

            if record is None or record.is_expired(now):
                record = RateRecord(count=1, reset_time=now + rule.window_ms)
                self._records[key] = record
                allowed = True
            elif record.count < rule.max_requests:
                record.count += 1
                allowed = True
            else:
                allowed = False

            return RateLimitResult(
                allowed=allowed,
                limit=rule.max_requests,
                remaining=max(0, rule.max_requests - record.count) if allowed else 0,
                window_ms=rule.window_ms,
                reset_at=record.reset_time,
            )

    def is_allowed(self, client_key: str, endpoint: str) -> bool:
        return self.check(client_key, endpoint).allowed

    def get_remaining(self, client_key: str, endpoint: str) -> int:
        """Remaining quota in the current window, without counting a request."""
        rule = self.rules.get_rule(endpoint)
        record = self._records.get(self.make_key(client_key, endpoint))
        if record is None or record.is_expired(now_ms()):
            return rule.max_requests
        return max(0, rule.max_requests - record.count)

    def cleanup(self) -> int:
        """Drop records whose window has ended. Returns the number removed."""
        removed = 0
        for key in list(self._records):
            with self._locks.hold(key):
                record = self._records.get(key)
                if record is not None and record.is_expired(now_ms()):
                    del self._records[key]
                    removed += 1
        if removed:
            logger.debug("Removed %d expired rate records", removed)
        return removed

    def reset(self) -> None:
        """Clear all records."""
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)
