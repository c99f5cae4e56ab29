"""Admin-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field


class SetRateRuleRequest(BaseModel):
    """Request to create or replace an endpoint's rate rule."""

    model_config = ConfigDict(populate_by_name=True)

    endpoint: str
    max_requests: int = Field(alias="maxRequests")
    window_ms: int = Field(alias="windowMs")


class RateRuleInfo(BaseModel):
    """Rate rule for one endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    endpoint: str
    max_requests: int = Field(alias="maxRequests")
    window_ms: int = Field(alias="windowMs")


class SetRateRuleResponse(BaseModel):
    """Response after setting a rate rule."""

    message: str
    rule: RateRuleInfo


class ListRateRulesResponse(BaseModel):
    """Response for GET /admin/rate-limits."""

    default: RateRuleInfo
    items: list[RateRuleInfo]


class BlockEntry(BaseModel):
    """A blocked client key."""

    key: str
    reason: str
    timestamp: str


class ListBlocksResponse(BaseModel):
    """Response for GET /admin/blocked."""

    items: list[BlockEntry]


class FlagEntry(BaseModel):
    """A flagged client key."""

    key: str
    reason: str
    timestamp: str


class ListFlagsResponse(BaseModel):
    """Response for GET /admin/flags."""

    items: list[FlagEntry]


class UnblockResponse(BaseModel):
    """Response after unblocking a client key."""

    message: str
    key: str
    was_blocked: bool


class EmergencyUnblockRequest(BaseModel):
    """Shared-secret unblock request."""

    secret: str
    key: str
