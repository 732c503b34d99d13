"""
Gateway Overview API
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ollama_gateway.api.deps import (
    ApiKeyServiceDep,
    LogServiceDep,
    ModelServiceDep,
    require_admin_auth,
)
from ollama_gateway.domain.log import UsageStats

router = APIRouter(
    prefix="/admin/stats",
    tags=["Admin - Stats"],
    dependencies=[Depends(require_admin_auth)],
)


class OverviewResponse(BaseModel):
    api_keys: int
    enabled_models: int
    usage: UsageStats
    backend_connected: bool


@router.get("", response_model=OverviewResponse)
async def get_overview(
    api_key_service: ApiKeyServiceDep,
    model_service: ModelServiceDep,
    log_service: LogServiceDep,
):
    """Key count, enabled model count, usage totals and Ollama connectivity"""
    return OverviewResponse(
        api_keys=await api_key_service.count(),
        enabled_models=len(await model_service.get_all(enabled=True)),
        usage=await log_service.get_stats(),
        backend_connected=await model_service.backend_reachable(),
    )
