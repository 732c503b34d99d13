"""
Shared helpers for the proxy routes
"""

import logging
from typing import Any, Mapping, Optional

from fastapi import Request
from fastapi.responses import JSONResponse, StreamingResponse

from ollama_gateway.common.errors import AppError, Dialect, InvalidRequestError
from ollama_gateway.common.sanitizer import sanitize_headers
from ollama_gateway.config import get_settings
from ollama_gateway.domain.api_key import ApiKeyModel
from ollama_gateway.protocol.base import wants_stream
from ollama_gateway.services import GatewayService, RequestContext

logger = logging.getLogger(__name__)

DEFAULT_ANTHROPIC_VERSION = "2023-06-01"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def dialect_for_path(path: str) -> Dialect:
    if path.startswith("/anthropic/") or path == "/v1/messages":
        return Dialect.ANTHROPIC
    return Dialect.OPENAI


def anthropic_headers(request: Request) -> dict[str, str]:
    """Echo the caller's anthropic-version"""
    return {
        "anthropic-version": request.headers.get("anthropic-version")
        or DEFAULT_ANTHROPIC_VERSION
    }


def request_context(request: Request) -> RequestContext:
    logger.debug(
        "%s %s headers=%s",
        request.method,
        request.url.path,
        sanitize_headers(request.headers),
    )
    return RequestContext(
        endpoint=request.url.path,
        user_agent=request.headers.get("user-agent"),
        ip=request.client.host if request.client else None,
    )


async def read_json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise InvalidRequestError(
            message="Request body is not valid JSON",
            code="invalid_json",
        )


def error_response(
    error: AppError,
    dialect: Dialect,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        content=error.to_dict(dialect, include_details=get_settings().DEBUG),
        status_code=error.status_code,
        headers=dict(headers or {}),
    )


async def handle_chat_request(
    request: Request,
    api_key: ApiKeyModel,
    service: GatewayService,
    dialect: Dialect,
    headers: Optional[Mapping[str, str]] = None,
):
    """
    Run a chat request in either dialect

    Streamed requests get an SSE response; failures before the first backend
    chunk are returned as a regular JSON error in the caller's envelope.
    """
    headers = dict(headers or {})
    try:
        body = await read_json_body(request)
        context = request_context(request)

        if isinstance(body, dict) and wants_stream(body):
            stream = await service.stream_chat(dialect, body, api_key, context)
            return StreamingResponse(
                stream,
                media_type="text/event-stream",
                headers={**SSE_HEADERS, **headers},
            )

        content = await service.complete_chat(dialect, body, api_key, context)
        return JSONResponse(content=content, headers=headers)

    except AppError as e:
        return error_response(e, dialect, headers)
    except Exception as e:
        # Unexpected errors return 500
        logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return error_response(AppError(message="Internal server error"), dialect, headers)
