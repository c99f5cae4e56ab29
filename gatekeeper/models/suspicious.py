"""Flag and block models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class FlagReason(str, Enum):
    """Threshold that caused a key to be flagged."""

    REPEATED_FAILURES = "repeated_failures"
    TRAFFIC_SPIKE = "traffic_spike"
    ABNORMAL_PATTERN = "abnormal_pattern"


class FlagInfo(BaseModel):
    """Permanent marker that a key crossed a suspicion threshold."""

    reason: FlagReason
    timestamp: datetime


class BlockInfo(BaseModel):
    """Enforced denial state for a key, reversible by an admin."""

    reason: FlagReason
    timestamp: datetime
