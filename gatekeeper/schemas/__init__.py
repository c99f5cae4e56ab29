"""Pydantic schemas for request/response validation."""

from gatekeeper.schemas.admin import (
    BlockEntry,
    EmergencyUnblockRequest,
    FlagEntry,
    ListBlocksResponse,
    ListFlagsResponse,
    ListRateRulesResponse,
    RateRuleInfo,
    SetRateRuleRequest,
    SetRateRuleResponse,
    UnblockResponse,
)
from gatekeeper.schemas.submit import SubmitRequest, SubmitResponse

__all__ = [
    "BlockEntry",
    "EmergencyUnblockRequest",
    "FlagEntry",
    "ListBlocksResponse",
    "ListFlagsResponse",
    "ListRateRulesResponse",
    "RateRuleInfo",
    "SetRateRuleRequest",
    "SetRateRuleResponse",
    "SubmitRequest",
    "SubmitResponse",
    "UnblockResponse",
]
