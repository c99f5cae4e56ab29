"""Schemas for the protected submit endpoint."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SubmitRequest(BaseModel):
    """Payload accepted by POST /api/submit."""

    model_config = ConfigDict(populate_by_name=True)

    message: str | None = None
    user_id: str | None = Field(default=None, alias="userId")


class SubmitResponse(BaseModel):
    """Acknowledgement echoing the submitted data."""

    success: bool
    message: str
    data: dict[str, Any]
    user: dict[str, Any]
    timestamp: str
