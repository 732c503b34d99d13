"""
Model Config Domain Model

A model record maps a caller-facing display name onto an Ollama model and carries
optional per-model parameter overrides.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ollama_gateway.common.time import ensure_utc


class ModelConfigBase(BaseModel):
    """Model Config Base Model"""

    # Model name as known to Ollama, e.g. "llama3:latest"
    backend_name: str = Field(..., min_length=1, max_length=200, description="Backend Model Name")
    # Name exposed to callers; defaults to the backend name
    display_name: Optional[str] = Field(None, max_length=200, description="Display Name")
    # Disabled models are hidden from listings and rejected on use
    enabled: bool = Field(True, description="Is Enabled")
    # Per-model overrides: sampling options plus think / timeout / keep_alive keys
    parameter_overrides: Optional[dict[str, Any]] = Field(
        None, description="Parameter Overrides"
    )


class ModelConfigCreate(ModelConfigBase):
    """Create Model Config Request Model"""
    pass


class ModelConfigUpdate(BaseModel):
    """Update Model Config Request Model"""

    display_name: Optional[str] = Field(None, max_length=200)
    enabled: Optional[bool] = None
    parameter_overrides: Optional[dict[str, Any]] = None


class ModelConfig(ModelConfigBase):
    """Model Config Complete Model"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    size: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    @property
    def public_name(self) -> str:
        return self.display_name or self.backend_name

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        dt = ensure_utc(v)
        assert dt is not None
        return dt


class ModelSyncResult(BaseModel):
    """Outcome of a /api/tags synchronization"""

    added: list[str] = Field(default_factory=list)
    total: int = 0
