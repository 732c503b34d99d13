"""
SQLAlchemy Repository Implementation Module Initialization
"""

from ollama_gateway.repositories.sqlalchemy.api_key_repo import SQLAlchemyApiKeyRepository
from ollama_gateway.repositories.sqlalchemy.model_repo import SQLAlchemyModelConfigRepository
from ollama_gateway.repositories.sqlalchemy.log_repo import SQLAlchemyUsageLogRepository

__all__ = [
    "SQLAlchemyApiKeyRepository",
    "SQLAlchemyModelConfigRepository",
    "SQLAlchemyUsageLogRepository",
]
