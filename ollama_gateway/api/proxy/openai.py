"""
OpenAI Proxy API

Provides OpenAI-compatible API endpoints backed by Ollama.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ollama_gateway.api.deps import CurrentApiKey, GatewayServiceDep, ModelServiceDep
from ollama_gateway.api.proxy.utils import (
    error_response,
    handle_chat_request,
    read_json_body,
    request_context,
)
from ollama_gateway.common.errors import AppError, Dialect
from ollama_gateway.common.time import unix_seconds

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Proxy - OpenAI"])


@router.get("/v1/models")
async def list_models(
    api_key: CurrentApiKey,
    service: ModelServiceDep,
):
    """
    OpenAI Models API (List)

    Returns enabled models that the calling key may use.
    """
    try:
        items = await service.list_for_key(api_key)
        return {
            "object": "list",
            "data": [
                {
                    "id": item.public_name,
                    "object": "model",
                    "created": unix_seconds(item.created_at),
                    "owned_by": "ollama",
                }
                for item in items
            ],
        }
    except AppError as e:
        return error_response(e, Dialect.OPENAI)


@router.post("/v1/chat/completions")
async def chat_completions(
    request: Request,
    api_key: CurrentApiKey,
    service: GatewayServiceDep,
):
    """
    OpenAI Chat Completions API
    """
    return await handle_chat_request(request, api_key, service, Dialect.OPENAI)


@router.post("/v1/embeddings")
async def embeddings(
    request: Request,
    api_key: CurrentApiKey,
    service: GatewayServiceDep,
):
    """
    OpenAI Embeddings API
    """
    try:
        body = await read_json_body(request)
        content = await service.embeddings(body, api_key, request_context(request))
        return JSONResponse(content=content)
    except AppError as e:
        return error_response(e, Dialect.OPENAI)
    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return error_response(AppError(message="Internal server error"), Dialect.OPENAI)
