"""Admission pipeline: per-request allow/deny decision.

Stages run in a fixed order and the first denial wins:

1. rate limit on (normalized IP, endpoint)
2. abusive content
3. suspicious activity tracking (record only, never denies)
4. block gate on (IP or user id), skipped for admin paths

Failures are recorded after the response is known, through
:meth:`AdmissionPipeline.on_response_complete`.
"""

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from gatekeeper.services.abuse import AbuseDetector
from gatekeeper.services.keys import normalize_ip, resolve_client_key
from gatekeeper.services.rate_limiter import FixedWindowRateLimiter
from gatekeeper.services.suspicious import SuspiciousActivityTracker

logger = logging.getLogger(__name__)


class DenyReason(str, Enum):
    """Why the pipeline stopped a request."""

    RATE_LIMITED = "rate_limited"
    ABUSIVE_CONTENT = "abusive_content"
    BLOCKED = "blocked"


class RequestContext(BaseModel):
    """What the pipeline needs to know about an incoming request."""

    ip: str
    endpoint: str
    user_id: str | None = None
    content: list[Any] = Field(default_factory=list)


class AdmissionDecision(BaseModel):
    """
    Terminal or pass-through decision for a request.

    Denials carry the HTTP status and body for the transport to send.
    Admitted requests carry the rate-limit headers.
    """

    allowed: bool
    status_code: int = 200
    reason: DenyReason | None = None
    body: dict[str, Any] | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    client_key: str
    tracked: bool = False
    suspicious: bool = False
    suspicious_reason: str | None = None


class AdmissionPipeline:
    """Orchestrates the rate limiter, abuse detector, tracker and block gate."""

    def __init__(
        self,
        rate_limiter: FixedWindowRateLimiter,
        abuse_detector: AbuseDetector,
        tracker: SuspiciousActivityTracker,
        admin_path_prefix: str = "/admin/",
    ):
        self.rate_limiter = rate_limiter
        self.abuse_detector = abuse_detector
        self.tracker = tracker
        self.admin_path_prefix = admin_path_prefix

    def is_admin_path(self, path: str) -> bool:
        return path.startswith(self.admin_path_prefix)

    def admit(self, context: RequestContext) -> AdmissionDecision:
        ip = normalize_ip(context.ip)
        client_key = resolve_client_key(ip, context.user_id)

        limit = self.rate_limiter.check(ip, context.endpoint)
        if not limit.allowed:
            logger.info("Rate limit exceeded for %s on %s", ip, context.endpoint)
            return AdmissionDecision(
                allowed=False,
                status_code=429,
                reason=DenyReason.RATE_LIMITED,
                body={
                    "error": "Too Many Requests",
                    "message": "Rate limit exceeded for this endpoint. Please try again later.",
                    "endpoint": context.endpoint,
                    "remaining": 0,
                },
                client_key=client_key,
            )

        if self.abuse_detector.detect(context.content):
            logger.warning("Abusive content detected from %s on %s", ip, context.endpoint)
            return AdmissionDecision(
                allowed=False,
                status_code=403,
                reason=DenyReason.ABUSIVE_CONTENT,
                body={
                    "error": "Forbidden",
                    "message": "Abusive content detected. Request blocked.",
                },
                client_key=client_key,
            )

        self.tracker.track_request(ip)
        flag = self.tracker.get_flag_info(ip, context.user_id)
        annotations = {
            "client_key": client_key,
            "tracked": True,
            "suspicious": flag is not None,
            "suspicious_reason": flag.reason.value if flag else None,
        }

        if not self.is_admin_path(context.endpoint):
            block = self.tracker.get_block_info(ip, context.user_id)
            if block is not None:
                return AdmissionDecision(
                    allowed=False,
                    status_code=403,
                    reason=DenyReason.BLOCKED,
                    body={
                        "error": "Access Blocked",
                        "message": (
                            "Your account/IP has been blocked due to suspicious activity. "
                            "Contact admin."
                        ),
                        "reason": block.reason.value,
                    },
                    **annotations,
                )

        return AdmissionDecision(
            allowed=True,
            headers={
                "X-RateLimit-Limit": str(limit.limit),
                "X-RateLimit-Remaining": str(limit.remaining),
                "X-RateLimit-Reset": str(limit.reset_seconds),
            },
            **annotations,
        )

    def on_response_complete(self, context: RequestContext, status_code: int) -> None:
        """Record the final response status; any status >= 400 counts as a failure."""
        if status_code >= 400:
            self.tracker.track_failure(normalize_ip(context.ip), context.user_id)
