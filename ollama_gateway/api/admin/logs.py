"""
Usage Log Query API
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ollama_gateway.api.deps import LogServiceDep, require_admin_auth
from ollama_gateway.common.errors import AppError
from ollama_gateway.domain.log import UsageLogModel, UsageLogQuery, UsageStatus

router = APIRouter(
    prefix="/admin/logs",
    tags=["Admin - Logs"],
    dependencies=[Depends(require_admin_auth)],
)


class PaginatedLogResponse(BaseModel):
    """Log Pagination Response"""
    items: list[UsageLogModel]
    total: int
    page: int
    page_size: int


@router.get("", response_model=PaginatedLogResponse)
async def list_logs(
    service: LogServiceDep,
    api_key_id: Optional[int] = Query(None, description="API Key ID"),
    model: Optional[str] = Query(None, description="Requested Model"),
    status: Optional[UsageStatus] = Query(None, description="success or error"),
    start_time: Optional[datetime] = Query(None, description="Start Time"),
    end_time: Optional[datetime] = Query(None, description="End Time"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
):
    """
    Query usage logs, newest first
    """
    try:
        query = UsageLogQuery(
            api_key_id=api_key_id,
            model=model,
            status=status,
            start_time=start_time,
            end_time=end_time,
            page=page,
            page_size=page_size,
        )
        items, total = await service.query(query)
        return PaginatedLogResponse(items=items, total=total, page=page, page_size=page_size)
    except AppError as e:
        return JSONResponse(content=e.to_dict(), status_code=e.status_code)
