"""
Model Admin API

Lists model records, syncs them from Ollama and edits overrides.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ollama_gateway.api.deps import ModelServiceDep, require_admin_auth
from ollama_gateway.common.errors import AppError
from ollama_gateway.domain.model import ModelConfig, ModelConfigUpdate, ModelSyncResult
from ollama_gateway.protocol.error_mapper import map_backend_error

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/models",
    tags=["Admin - Models"],
    dependencies=[Depends(require_admin_auth)],
)


@router.get("", response_model=list[ModelConfig])
async def list_models(
    service: ModelServiceDep,
    enabled: Optional[bool] = Query(None, description="Filter by enabled flag"),
):
    try:
        return await service.get_all(enabled=enabled)
    except AppError as e:
        return JSONResponse(content=e.to_dict(), status_code=e.status_code)


@router.post("/sync", response_model=ModelSyncResult)
async def sync_models(service: ModelServiceDep):
    """
    Sync models from Ollama /api/tags

    New models are registered enabled; existing records are kept as they are.
    """
    try:
        return await service.sync()
    except Exception as e:
        error = map_backend_error(e)
        logger.error("Model sync failed: %s", error.message)
        return JSONResponse(content=error.to_dict(), status_code=error.status_code)


@router.get("/{model_id}", response_model=ModelConfig)
async def get_model(model_id: int, service: ModelServiceDep):
    try:
        return await service.get_by_id(model_id)
    except AppError as e:
        return JSONResponse(content=e.to_dict(), status_code=e.status_code)


@router.put("/{model_id}", response_model=ModelConfig)
async def update_model(
    model_id: int,
    data: ModelConfigUpdate,
    service: ModelServiceDep,
):
    """
    Update Model

    Display name, enabled flag and parameter overrides can be changed.
    """
    try:
        return await service.update(model_id, data)
    except AppError as e:
        return JSONResponse(content=e.to_dict(), status_code=e.status_code)
