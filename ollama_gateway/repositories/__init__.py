"""
Data Access Layer Module
"""

from ollama_gateway.repositories.api_key_repo import ApiKeyRepository
from ollama_gateway.repositories.model_repo import ModelConfigRepository
from ollama_gateway.repositories.log_repo import UsageLogRepository

__all__ = [
    "ApiKeyRepository",
    "ModelConfigRepository",
    "UsageLogRepository",
]
