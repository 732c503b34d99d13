"""
Domain Model Module
"""

from ollama_gateway.domain.api_key import (
    ApiKeyModel,
    ApiKeyCreate,
    ApiKeyUpdate,
    ApiKeyResponse,
    ApiKeyCreateResponse,
)
from ollama_gateway.domain.model import (
    ModelConfig,
    ModelConfigCreate,
    ModelConfigUpdate,
    ModelSyncResult,
)
from ollama_gateway.domain.log import (
    UsageLogCreate,
    UsageLogModel,
    UsageLogQuery,
    UsageStats,
)
from ollama_gateway.domain.request import (
    ChatMessage,
    EmbedRequest,
    NormalizedRequest,
    ThinkValue,
)

__all__ = [
    "ApiKeyModel",
    "ApiKeyCreate",
    "ApiKeyUpdate",
    "ApiKeyResponse",
    "ApiKeyCreateResponse",
    "ModelConfig",
    "ModelConfigCreate",
    "ModelConfigUpdate",
    "ModelSyncResult",
    "UsageLogCreate",
    "UsageLogModel",
    "UsageLogQuery",
    "UsageStats",
    "ChatMessage",
    "EmbedRequest",
    "NormalizedRequest",
    "ThinkValue",
]
