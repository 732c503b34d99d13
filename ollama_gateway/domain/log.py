"""
Usage Log Domain Model

Defines usage log related Data Transfer Objects (DTOs).
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ollama_gateway.common.time import ensure_utc

UsageStatus = Literal["success", "error"]


class UsageLogCreate(BaseModel):
    """Create Usage Log Model"""

    # Request Time
    timestamp: datetime = Field(..., description="Request Time")
    # API Key ID
    api_key_id: Optional[int] = Field(None, description="API Key ID")
    # API Key Name (Redundant field for easy querying)
    api_key_name: Optional[str] = Field(None, description="API Key Name")
    # Model name as requested by the caller
    model: Optional[str] = Field(None, description="Requested Model")
    # Token counts
    tokens: int = Field(0, description="Total Tokens")
    prompt_tokens: int = Field(0, description="Prompt Tokens")
    completion_tokens: int = Field(0, description="Completion Tokens")
    # Total Time (ms)
    response_time_ms: int = Field(0, description="Response Time")
    status: UsageStatus = Field("success", description="Request Status")
    endpoint: Optional[str] = Field(None, description="Request Path")
    user_agent: Optional[str] = Field(None, description="User Agent")
    ip: Optional[str] = Field(None, description="Client IP")
    is_stream: bool = Field(False, description="Is Stream Request")
    error_info: Optional[str] = Field(None, description="Error Info")

    @field_validator("timestamp", mode="after")
    @classmethod
    def _timestamp_utc(cls, v: datetime) -> datetime:
        dt = ensure_utc(v)
        assert dt is not None
        return dt


class UsageLogModel(UsageLogCreate):
    """Usage Log Complete Model"""

    model_config = ConfigDict(from_attributes=True)

    id: int


class UsageLogQuery(BaseModel):
    """Usage Log Query Conditions"""

    api_key_id: Optional[int] = None
    model: Optional[str] = None
    status: Optional[UsageStatus] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=100)


class UsageStats(BaseModel):
    """Aggregated usage counters"""

    total_requests: int = 0
    error_requests: int = 0
    total_tokens: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
