"""
Model Service Module

Resolves caller model names onto Ollama models and manages model records.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ollama_gateway.common.errors import InvalidRequestError, NotFoundError
from ollama_gateway.domain.api_key import ApiKeyModel
from ollama_gateway.domain.model import (
    ModelConfig,
    ModelConfigCreate,
    ModelConfigUpdate,
    ModelSyncResult,
)
from ollama_gateway.providers.ollama_client import OllamaClient
from ollama_gateway.repositories.model_repo import ModelConfigRepository
from ollama_gateway.services.api_key_service import LATEST_TAG, is_model_allowed

logger = logging.getLogger(__name__)


@dataclass
class ResolvedModel:
    """Outcome of model name resolution"""

    requested: str
    backend_name: str
    overrides: dict[str, Any] = field(default_factory=dict)
    record: Optional[ModelConfig] = None


class ModelService:
    """
    Model Service

    Args (constructor):
        repo: Model Config Repository
        client: Ollama client used for /api/tags synchronization
    """

    def __init__(self, repo: ModelConfigRepository, client: Optional[OllamaClient] = None):
        self.repo = repo
        self.client = client or OllamaClient()

    async def _find(self, requested: str) -> Optional[ModelConfig]:
        record = await self.repo.get_by_display_name(requested)
        if record:
            return record
        if ":" not in requested:
            record = await self.repo.get_by_backend_name(requested + LATEST_TAG)
            if record:
                return record
        return await self.repo.get_by_backend_name(requested)

    async def resolve(self, requested: str) -> ResolvedModel:
        """
        Map a caller model name onto a backend model

        Display name first, then "<name>:latest" for untagged names, then
        the backend name. Unknown names are passed to Ollama verbatim.

        Raises:
            InvalidRequestError: The matching model record is disabled
        """
        record = await self._find(requested)
        if record is None:
            return ResolvedModel(requested=requested, backend_name=requested)
        if not record.enabled:
            raise InvalidRequestError(
                message=f"Model '{requested}' is disabled",
                code="model_disabled",
                param="model",
            )
        return ResolvedModel(
            requested=requested,
            backend_name=record.backend_name,
            overrides=dict(record.parameter_overrides or {}),
            record=record,
        )

    async def list_for_key(self, api_key: ApiKeyModel) -> list[ModelConfig]:
        """Enabled models the key may call, matched on display or backend name"""
        models = await self.repo.get_all(enabled=True)
        return [
            model
            for model in models
            if is_model_allowed(api_key.allowed_models, model.public_name)
            or is_model_allowed(api_key.allowed_models, model.backend_name)
        ]

    # ============ Admin Operations ============

    async def get_all(self, enabled: Optional[bool] = None) -> list[ModelConfig]:
        return await self.repo.get_all(enabled=enabled)

    async def get_by_id(self, id: int) -> ModelConfig:
        model = await self.repo.get_by_id(id)
        if not model:
            raise NotFoundError(
                message=f"Model with id {id} not found",
                code="model_not_found",
            )
        return model

    async def update(self, id: int, data: ModelConfigUpdate) -> ModelConfig:
        updated = await self.repo.update(id, data)
        if not updated:
            raise NotFoundError(
                message=f"Model with id {id} not found",
                code="model_not_found",
            )
        return updated

    async def sync(self) -> ModelSyncResult:
        """
        Register models installed in Ollama

        Existing records are left untouched; new ones are created enabled
        with the backend name as display name.

        Raises:
            BackendHTTPError / httpx.HTTPError: Ollama is unreachable or failed
        """
        installed = await self.client.list_models()
        added: list[str] = []
        for entry in installed:
            if not isinstance(entry, dict):
                continue
            name = entry.get("name") or entry.get("model")
            if not name or await self.repo.get_by_backend_name(name):
                continue
            size = entry.get("size")
            await self.repo.create(
                ModelConfigCreate(backend_name=name),
                size=size if isinstance(size, int) else None,
            )
            added.append(name)

        if added:
            logger.info("Model sync added %d model(s): %s", len(added), ", ".join(added))
        return ModelSyncResult(added=added, total=len(installed))

    async def backend_reachable(self) -> bool:
        try:
            await self.client.list_models()
        except Exception as e:
            logger.warning("Ollama connectivity check failed: %s", e)
            return False
        return True
