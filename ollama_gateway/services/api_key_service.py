"""
API Key Service Module

Authentication, model allow-list checks and API Key management.
"""

import logging
from typing import Iterable, Optional

from ollama_gateway.common.errors import (
    AuthenticationError,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
)
from ollama_gateway.common.sanitizer import sanitize_api_key_display
from ollama_gateway.common.time import utc_now
from ollama_gateway.common.utils import generate_api_key
from ollama_gateway.domain.api_key import (
    ApiKeyCreate,
    ApiKeyCreateResponse,
    ApiKeyModel,
    ApiKeyResponse,
    ApiKeyUpdate,
)
from ollama_gateway.repositories.api_key_repo import ApiKeyRepository

logger = logging.getLogger(__name__)

LATEST_TAG = ":latest"


def model_name_variants(model: str) -> set[str]:
    """
    Names that refer to the same model

    "llama3" and "llama3:latest" are interchangeable; any other tag is not.
    """
    variants = {model}
    if model.endswith(LATEST_TAG):
        variants.add(model[: -len(LATEST_TAG)])
    elif ":" not in model:
        variants.add(model + LATEST_TAG)
    return variants


def is_model_allowed(allowed_models: Iterable[str], model: str) -> bool:
    allowed = set(allowed_models)
    if "*" in allowed:
        return True
    return bool(model_name_variants(model) & allowed)


def require_model_name(body: object) -> str:
    """
    Extract the requested model from a caller body

    Raises:
        InvalidRequestError: Body is not an object or has no model
    """
    if not isinstance(body, dict):
        raise InvalidRequestError(
            message="Request body must be a JSON object",
            code="invalid_body",
        )
    model = body.get("model")
    if not isinstance(model, str) or not model.strip():
        raise InvalidRequestError(
            message="Missing required parameter: 'model'",
            code="missing_model",
            param="model",
        )
    return model.strip()


class ApiKeyService:
    """
    API Key Service

    Handles caller authentication and the API Key admin operations.
    """

    def __init__(self, repo: ApiKeyRepository):
        """
        Initialize Service

        Args:
            repo: API Key Repository
        """
        self.repo = repo

    async def authenticate(self, token: Optional[str]) -> ApiKeyModel:
        """
        Verify a caller token

        Header parsing happens in the route dependency; this receives the key itself.
        On success the usage counter and last-used time are updated.

        Args:
            token: API Key value

        Returns:
            ApiKeyModel: Authenticated API Key

        Raises:
            AuthenticationError: Token missing, unknown or inactive
        """
        token = (token or "").strip()
        if not token:
            raise AuthenticationError(
                message="Missing API key. Provide it via 'Authorization: Bearer <key>' or 'x-api-key'",
                code="missing_api_key",
            )

        api_key = await self.repo.get_by_key_value(token)
        if api_key is None or not api_key.is_active:
            logger.warning(
                "Rejected API key %s (%s)",
                sanitize_api_key_display(token),
                "inactive" if api_key else "unknown",
            )
            raise AuthenticationError(message="Invalid API key", code="invalid_api_key")

        used_at = utc_now()
        await self.repo.record_usage(api_key.id, used_at)
        return api_key.model_copy(
            update={"usage_count": api_key.usage_count + 1, "last_used_at": used_at}
        )

    def ensure_model_access(self, api_key: ApiKeyModel, model: str) -> None:
        """
        Check the key's model allow-list

        Raises:
            PermissionDeniedError: Model not allowed for this key
        """
        if is_model_allowed(api_key.allowed_models, model):
            return
        raise PermissionDeniedError(
            message=f"API key '{api_key.name}' is not allowed to use model '{model}'",
            code="model_access_denied",
            param="model",
        )

    # ============ Admin Operations ============

    def _to_response(self, api_key: ApiKeyModel) -> ApiKeyResponse:
        return ApiKeyResponse(
            id=api_key.id,
            name=api_key.name,
            allowed_models=api_key.allowed_models,
            key_value=sanitize_api_key_display(api_key.key_value),
            is_active=api_key.is_active,
            usage_count=api_key.usage_count,
            created_at=api_key.created_at,
            last_used_at=api_key.last_used_at,
        )

    async def create(self, data: ApiKeyCreate) -> ApiKeyCreateResponse:
        """
        Create API Key

        The generated secret is returned in full only here.

        Raises:
            ConflictError: Key name already in use
        """
        if await self.repo.get_by_name(data.name):
            raise ConflictError(
                message=f"API key name '{data.name}' already exists",
                code="duplicate_name",
            )

        created = await self.repo.create(data, key_value=generate_api_key())
        logger.info("Created API key id=%s name=%s", created.id, created.name)
        return ApiKeyCreateResponse(
            id=created.id,
            name=created.name,
            allowed_models=created.allowed_models,
            key_value=created.key_value,
            is_active=created.is_active,
            usage_count=created.usage_count,
            created_at=created.created_at,
            last_used_at=created.last_used_at,
        )

    async def get_by_id(self, id: int) -> ApiKeyResponse:
        api_key = await self.repo.get_by_id(id)
        if not api_key:
            raise NotFoundError(
                message=f"API key with id {id} not found",
                code="api_key_not_found",
            )
        return self._to_response(api_key)

    async def get_all(
        self,
        is_active: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[ApiKeyResponse], int]:
        items, total = await self.repo.get_all(is_active, page, page_size)
        return [self._to_response(item) for item in items], total

    async def update(self, id: int, data: ApiKeyUpdate) -> ApiKeyResponse:
        """
        Update name, allowed models or active flag

        Raises:
            NotFoundError: API Key not found
            ConflictError: New name already in use
        """
        if data.name:
            existing = await self.repo.get_by_name(data.name)
            if existing and existing.id != id:
                raise ConflictError(
                    message=f"API key name '{data.name}' already exists",
                    code="duplicate_name",
                )

        updated = await self.repo.update(id, data)
        if not updated:
            raise NotFoundError(
                message=f"API key with id {id} not found",
                code="api_key_not_found",
            )
        return self._to_response(updated)

    async def delete(self, id: int) -> None:
        if not await self.repo.delete(id):
            raise NotFoundError(
                message=f"API key with id {id} not found",
                code="api_key_not_found",
            )

    async def count(self) -> int:
        return await self.repo.count()
