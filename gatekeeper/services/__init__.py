"""Services for the gatekeeper API."""

from gatekeeper.services.abuse import AbuseDetector
from gatekeeper.services.blocks import BlockStore
from gatekeeper.services.container import GatekeeperServices
from gatekeeper.services.keys import normalize_ip, resolve_client_key
from gatekeeper.services.pipeline import (
    AdmissionDecision,
    AdmissionPipeline,
    DenyReason,
    RequestContext,
)
from gatekeeper.services.rate_limiter import FixedWindowRateLimiter, RateLimitResult
from gatekeeper.services.rules import RateRuleStore
from gatekeeper.services.suspicious import SuspiciousActivityTracker

__all__ = [
    "AbuseDetector",
    "AdmissionDecision",
    "AdmissionPipeline",
    "BlockStore",
    "DenyReason",
    "FixedWindowRateLimiter",
    "GatekeeperServices",
    "RateLimitResult",
    "RateRuleStore",
    "RequestContext",
    "SuspiciousActivityTracker",
    "normalize_ip",
    "resolve_client_key",
]
