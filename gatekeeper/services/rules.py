"""Rate rule store: per-endpoint limits with a process-wide default."""

import logging
import threading

from pydantic import ValidationError as PydanticValidationError

from gatekeeper.errors import PersistenceWriteError, ValidationError
from gatekeeper.models.rate_limit import RateRule
from gatekeeper.storage import StateStore, load_or_empty

logger = logging.getLogger(__name__)


class RateRuleStore:
    """Service for reading and updating endpoint rate rules."""

    def __init__(self, store: StateStore, default_rule: RateRule):
        self.store = store
        self.default_rule = default_rule
        self._lock = threading.Lock()
        self._rules: dict[str, RateRule] = self._load()

    def _load(self) -> dict[str, RateRule]:
        data = load_or_empty(self.store)
        try:
            return {endpoint: RateRule.model_validate(rule) for endpoint, rule in data.items()}
        except PydanticValidationError as exc:
            logger.warning("Starting with no rate rules, invalid rule data: %s", exc)
            return {}

    def get_rule(self, endpoint: str) -> RateRule:
        """Return the endpoint's rule, or the default rule when none is set."""
        return self._rules.get(endpoint, self.default_rule)

    def all_rules(self) -> dict[str, RateRule]:
        with self._lock:
            return dict(self._rules)

    def set_rule(self, endpoint: str, max_requests: int, window_ms: int) -> RateRule:
        """
        Create or replace the rule for an endpoint.

        The whole rule table is written before returning. If the write fails
        the previous rule is restored, so memory and disk stay in agreement.

        Raises:
            ValidationError: endpoint empty, or limits not positive integers
            PersistenceWriteError: the rule table could not be written
        """
        if not endpoint:
            raise ValidationError("endpoint is required", field="endpoint")
        for field, value in (("maxRequests", max_requests), ("windowMs", window_ms)):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValidationError(f"{field} must be a positive integer", field=field)

        rule = RateRule(max_requests=max_requests, window_ms=window_ms)
        with self.store.lock:
            with self._lock:
                previous = self._rules.get(endpoint)
                self._rules[endpoint] = rule
                snapshot = {
                    name: stored.model_dump(by_alias=True) for name, stored in self._rules.items()
                }
            try:
                self.store.save(snapshot)
            except PersistenceWriteError:
                with self._lock:
                    if previous is None:
                        del self._rules[endpoint]
                    else:
                        self._rules[endpoint] = previous
                raise

        logger.info(
            "Rate rule set for %s: %d requests / %d ms", endpoint, max_requests, window_ms
        )
        return rule

    def ensure_rule(self, endpoint: str, max_requests: int, window_ms: int) -> RateRule:
        """Seed a rule only if the endpoint has none yet."""
        existing = self._rules.get(endpoint)
        if existing is not None:
            return existing
        return self.set_rule(endpoint, max_requests, window_ms)
