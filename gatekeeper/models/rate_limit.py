"""Rate rule and rate record models."""

from pydantic import BaseModel, ConfigDict, Field


class RateRule(BaseModel):
    """
    Fixed-window rate rule for one endpoint.

    Persisted as ``{"maxRequests": ..., "windowMs": ...}``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    max_requests: int = Field(alias="maxRequests")
    window_ms: int = Field(alias="windowMs")


class RateRecord:
    """Request count for one (client, endpoint) key in the current window."""

    __slots__ = ("count", "reset_time")

    def __init__(self, count: int, reset_time: float):
        self.count = count
        self.reset_time = reset_time

    def is_expired(self, now: float) -> bool:
        return now >= self.reset_time
