"""Service container built once per application."""

from gatekeeper.config import Settings
from gatekeeper.models.rate_limit import RateRule
from gatekeeper.services.abuse import AbuseDetector
from gatekeeper.services.blocks import BlockStore
from gatekeeper.services.pipeline import AdmissionPipeline
from gatekeeper.services.rate_limiter import FixedWindowRateLimiter
from gatekeeper.services.rules import RateRuleStore
from gatekeeper.services.suspicious import SuspiciousActivityTracker
from gatekeeper.storage import (
    BLOCKS_FILE,
    FAILURES_FILE,
    FLAGS_FILE,
    RATE_RULES_FILE,
    JsonFileStore,
)


class GatekeeperServices:
    """Owns every stateful service and wires them together."""

    def __init__(self, settings: Settings):
        self.settings = settings
        data_dir = settings.data_dir

        self.rules = RateRuleStore(
            JsonFileStore(data_dir / RATE_RULES_FILE),
            default_rule=RateRule(
                max_requests=settings.rate_limit_max,
                window_ms=settings.rate_limit_window_ms,
            ),
        )
        self.rate_limiter = FixedWindowRateLimiter(self.rules)
        self.blocks = BlockStore(JsonFileStore(data_dir / BLOCKS_FILE))
        self.tracker = SuspiciousActivityTracker(
            JsonFileStore(data_dir / FAILURES_FILE),
            JsonFileStore(data_dir / FLAGS_FILE),
            self.blocks,
            max_failures=settings.max_failures,
            spike_threshold=settings.spike_threshold,
            spike_window_ms=settings.spike_window_ms,
            pattern_interval_ms=settings.pattern_interval_ms,
        )
        self.abuse_detector = AbuseDetector(settings.abusive_words)
        self.pipeline = AdmissionPipeline(
            self.rate_limiter,
            self.abuse_detector,
            self.tracker,
            admin_path_prefix=settings.admin_path_prefix,
        )

    def sweep(self) -> int:
        """Remove expired rate records and idle request windows."""
        return self.rate_limiter.cleanup() + self.tracker.cleanup()
