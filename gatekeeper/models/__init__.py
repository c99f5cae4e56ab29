"""State records held by the gatekeeper services."""

from gatekeeper.models.rate_limit import RateRule
from gatekeeper.models.suspicious import BlockInfo, FlagInfo, FlagReason

__all__ = [
    "RateRule",
    "FlagReason",
    "FlagInfo",
    "BlockInfo",
]
