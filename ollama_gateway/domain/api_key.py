"""
API Key Domain Model

Defines API Key related Data Transfer Objects (DTOs).
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ollama_gateway.common.time import ensure_utc


class ApiKeyBase(BaseModel):
    """API Key Base Model"""

    # Key Name
    name: str = Field(..., min_length=1, max_length=100, description="Key Name")
    # Models this key may call; "*" allows every model
    allowed_models: list[str] = Field(
        default_factory=lambda: ["*"], description="Allowed Models"
    )

    @field_validator("allowed_models", mode="after")
    @classmethod
    def _strip_model_names(cls, v: list[str]) -> list[str]:
        return [name.strip() for name in v if name and name.strip()] or ["*"]


class ApiKeyCreate(ApiKeyBase):
    """Create API Key Request Model"""
    pass


class ApiKeyUpdate(BaseModel):
    """Update API Key Request Model"""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    allowed_models: Optional[list[str]] = None
    is_active: Optional[bool] = None


class ApiKeyModel(ApiKeyBase):
    """API Key Complete Model"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    key_value: str
    is_active: bool = True
    usage_count: int = 0
    created_at: datetime
    last_used_at: Optional[datetime] = None

    @field_validator("created_at", "last_used_at", mode="after")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class ApiKeyResponse(ApiKeyBase):
    """API Key Response Model (secret masked)"""

    id: int
    key_value: str = Field(..., description="Masked Key Value")
    is_active: bool
    usage_count: int
    created_at: datetime
    last_used_at: Optional[datetime] = None


class ApiKeyCreateResponse(ApiKeyResponse):
    """Returned once on creation, carries the full secret"""
    pass
