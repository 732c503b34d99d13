"""
API Dependency Injection Module

Provides the dependencies required by FastAPI routes.
"""

from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ollama_gateway.common.admin_auth import AdminTokenSigner, is_admin_auth_enabled
from ollama_gateway.config import get_settings
from ollama_gateway.db.session import get_db as _get_db
from ollama_gateway.domain.api_key import ApiKeyModel
from ollama_gateway.providers.ollama_client import OllamaClient
from ollama_gateway.repositories.sqlalchemy import (
    SQLAlchemyApiKeyRepository,
    SQLAlchemyModelConfigRepository,
    SQLAlchemyUsageLogRepository,
)
from ollama_gateway.services import (
    ApiKeyService,
    GatewayService,
    LogService,
    ModelService,
    UsageRecorder,
)


async def get_db():
    """
    Database session dependency

    Yields:
        AsyncSession: Async database session
    """
    async for session in _get_db():
        yield session


# Database session dependency type
DbSession = Annotated[AsyncSession, Depends(get_db)]


# ============ Backend Dependencies ============

def get_ollama_client() -> OllamaClient:
    return OllamaClient()


def get_usage_recorder() -> UsageRecorder:
    return UsageRecorder()


OllamaClientDep = Annotated[OllamaClient, Depends(get_ollama_client)]
UsageRecorderDep = Annotated[UsageRecorder, Depends(get_usage_recorder)]


# ============ Service Dependencies ============

def get_api_key_service(db: DbSession) -> ApiKeyService:
    """Get API Key service"""
    return ApiKeyService(SQLAlchemyApiKeyRepository(db))


def get_model_service(db: DbSession, client: OllamaClientDep) -> ModelService:
    """Get model service"""
    return ModelService(SQLAlchemyModelConfigRepository(db), client)


def get_log_service(db: DbSession) -> LogService:
    """Get log service"""
    return LogService(SQLAlchemyUsageLogRepository(db))


def get_gateway_service(
    db: DbSession,
    client: OllamaClientDep,
    recorder: UsageRecorderDep,
) -> GatewayService:
    """Get gateway service"""
    return GatewayService(
        api_key_service=ApiKeyService(SQLAlchemyApiKeyRepository(db)),
        model_service=ModelService(SQLAlchemyModelConfigRepository(db), client),
        client=client,
        recorder=recorder,
    )


# ============ Authentication Dependencies ============

def _extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    # only the Bearer scheme carries a key, anything else counts as absent
    if not authorization.lower().startswith("bearer "):
        return None
    return authorization[7:].strip() or None


def get_admin_signer() -> Optional[AdminTokenSigner]:
    """Token signer for the configured admin, None when admin auth is disabled"""
    settings = get_settings()
    if not is_admin_auth_enabled(settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD):
        return None
    return AdminTokenSigner(
        settings.ADMIN_USERNAME or "",
        settings.ADMIN_PASSWORD or "",
        ttl_seconds=settings.ADMIN_TOKEN_TTL_SECONDS,
    )


async def require_admin_auth(
    authorization: str = Header(None, description="Bearer token"),
    x_admin_token: str = Header(None, description="Admin token", alias="x-admin-token"),
) -> None:
    """
    Admin API login check

    Enabled when both ADMIN_USERNAME and ADMIN_PASSWORD are set, otherwise open.
    """
    signer = get_admin_signer()
    if signer is None:
        return

    token = x_admin_token or _extract_bearer_token(authorization)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not signer.verify(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_api_key(
    db: DbSession,
    authorization: str = Header(None, description="Bearer token"),
    x_api_key: str = Header(None, description="Anthropic style API key", alias="x-api-key"),
) -> ApiKeyModel:
    """
    Authenticate the calling API Key

    Reads the raw key from x-api-key, falling back to "Authorization: Bearer <key>".

    Raises:
        AuthenticationError: Key missing, unknown or inactive
    """
    service = get_api_key_service(db)
    token = (x_api_key or "").strip() or _extract_bearer_token(authorization)
    return await service.authenticate(token)


# Dependency type aliases
ApiKeyServiceDep = Annotated[ApiKeyService, Depends(get_api_key_service)]
ModelServiceDep = Annotated[ModelService, Depends(get_model_service)]
LogServiceDep = Annotated[LogService, Depends(get_log_service)]
GatewayServiceDep = Annotated[GatewayService, Depends(get_gateway_service)]
CurrentApiKey = Annotated[ApiKeyModel, Depends(get_current_api_key)]
