"""Base models shared by tool responses."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class BaseResponse(BaseModel):
    """Base response model for all MCP tool responses."""

    success: bool = Field(True, description="Whether the operation succeeded")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Response timestamp (UTC)",
    )
