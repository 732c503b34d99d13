"""
Anthropic Proxy API

Provides the Anthropic Messages API backed by Ollama.
"""

from fastapi import APIRouter, Request

from ollama_gateway.api.deps import CurrentApiKey, GatewayServiceDep
from ollama_gateway.api.proxy.utils import anthropic_headers, handle_chat_request
from ollama_gateway.common.errors import Dialect

router = APIRouter(tags=["Proxy - Anthropic"])


@router.post("/anthropic/v1/messages")
@router.post("/v1/messages")
async def messages(
    request: Request,
    api_key: CurrentApiKey,
    service: GatewayServiceDep,
):
    """
    Anthropic Messages API

    The anthropic-version request header is echoed back, default 2023-06-01.
    """
    return await handle_chat_request(
        request,
        api_key,
        service,
        Dialect.ANTHROPIC,
        headers=anthropic_headers(request),
    )
