"""
Gateway Service Module

Orchestrates one caller request: access check, normalization, the Ollama call,
response translation and usage logging.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, AsyncGenerator, AsyncIterator, Optional

import anyio

from ollama_gateway.common.errors import Dialect
from ollama_gateway.common.sanitizer import OptionSanitizer, get_option_sanitizer
from ollama_gateway.common.time import utc_now
from ollama_gateway.config import Settings, get_settings
from ollama_gateway.domain.api_key import ApiKeyModel
from ollama_gateway.domain.log import UsageLogCreate
from ollama_gateway.domain.request import NormalizedRequest
from ollama_gateway.protocol.anthropic_request import AnthropicRequestNormalizer
from ollama_gateway.protocol.error_mapper import map_backend_error
from ollama_gateway.protocol.images import ImageFetcher
from ollama_gateway.protocol.openai_request import OpenAIRequestNormalizer
from ollama_gateway.protocol.responses import (
    as_int,
    to_anthropic_message,
    to_openai_completion,
    to_openai_embeddings,
)
from ollama_gateway.protocol.stream import StreamTranslator, create_stream_translator
from ollama_gateway.providers.ollama_client import OllamaClient
from ollama_gateway.services.api_key_service import ApiKeyService, require_model_name
from ollama_gateway.services.log_service import UsageRecorder
from ollama_gateway.services.model_service import ModelService

logger = logging.getLogger(__name__)


def _model_label(body: Any) -> Optional[str]:
    model = body.get("model") if isinstance(body, dict) else None
    return model if isinstance(model, str) else None


@dataclass
class RequestContext:
    """Caller metadata copied into the usage log"""

    endpoint: str
    user_agent: Optional[str] = None
    ip: Optional[str] = None


@dataclass
class _Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0


class GatewayService:
    """
    Gateway Service

    Args (constructor):
        api_key_service: Access control gate
        model_service: Model name resolution
        client: Ollama client
        recorder: Usage log writer
        sanitizer: Option sanitizer, defaults to the process-wide instance
        fetcher: Image fetcher for remote image URLs
        settings: Application settings
    """

    def __init__(
        self,
        api_key_service: ApiKeyService,
        model_service: ModelService,
        client: Optional[OllamaClient] = None,
        recorder: Optional[UsageRecorder] = None,
        sanitizer: Optional[OptionSanitizer] = None,
        fetcher: Optional[ImageFetcher] = None,
        settings: Optional[Settings] = None,
    ):
        self.api_key_service = api_key_service
        self.model_service = model_service
        self.client = client or OllamaClient()
        self.recorder = recorder or UsageRecorder()
        self.settings = settings or get_settings()
        sanitizer = sanitizer or get_option_sanitizer()
        fetcher = fetcher or ImageFetcher()
        self.openai_normalizer = OpenAIRequestNormalizer(sanitizer, fetcher, self.settings)
        self.anthropic_normalizer = AnthropicRequestNormalizer(sanitizer, fetcher, self.settings)

    async def _record(
        self,
        api_key: ApiKeyModel,
        model: Optional[str],
        context: RequestContext,
        started: float,
        is_stream: bool,
        usage: Optional[_Usage] = None,
        error: Optional[str] = None,
    ) -> None:
        usage = usage if usage is not None and error is None else _Usage()
        await self.recorder.record(
            UsageLogCreate(
                timestamp=utc_now(),
                api_key_id=api_key.id,
                api_key_name=api_key.name,
                model=model,
                tokens=usage.prompt_tokens + usage.completion_tokens,
                prompt_tokens=usage.prompt_tokens,
                completion_tokens=usage.completion_tokens,
                response_time_ms=int((time.monotonic() - started) * 1000),
                status="error" if error else "success",
                endpoint=context.endpoint,
                user_agent=context.user_agent,
                ip=context.ip,
                is_stream=is_stream,
                error_info=error,
            )
        )

    async def _prepare(
        self,
        dialect: Dialect,
        body: Any,
        api_key: ApiKeyModel,
    ) -> tuple[str, NormalizedRequest]:
        model = require_model_name(body)
        self.api_key_service.ensure_model_access(api_key, model)
        resolved = await self.model_service.resolve(model)
        normalizer = (
            self.anthropic_normalizer if dialect == Dialect.ANTHROPIC else self.openai_normalizer
        )
        request = await normalizer.normalize(body, resolved.backend_name, resolved.overrides)
        return model, request

    async def complete_chat(
        self,
        dialect: Dialect,
        body: Any,
        api_key: ApiKeyModel,
        context: RequestContext,
    ) -> dict[str, Any]:
        """
        Buffered chat request

        Returns:
            dict: chat.completion (OpenAI) or message (Anthropic) body

        Raises:
            AppError: Validation, access or classified backend failure
        """
        started = time.monotonic()
        model = _model_label(body)
        try:
            model, request = await self._prepare(dialect, body, api_key)
            request.stream = False
            final = await self.client.chat(request.to_backend_payload(), request.timeout)
        except Exception as e:
            error = map_backend_error(e, model)
            logger.error("Chat request failed (model=%s): %s", model, error.message)
            await self._record(api_key, model, context, started, False, error=error.message)
            if error is e:
                raise
            raise error from e

        await self._record(
            api_key,
            model,
            context,
            started,
            False,
            _Usage(as_int(final.get("prompt_eval_count")), as_int(final.get("eval_count"))),
        )
        if dialect == Dialect.ANTHROPIC:
            return to_anthropic_message(final, model, request.include_reasoning)
        return to_openai_completion(final, model, request.include_reasoning)

    async def stream_chat(
        self,
        dialect: Dialect,
        body: Any,
        api_key: ApiKeyModel,
        context: RequestContext,
    ) -> AsyncIterator[bytes]:
        """
        Streamed chat request

        The first backend chunk is awaited here so that connection failures and
        error statuses surface as a plain error response instead of a broken
        event stream.

        Returns:
            AsyncIterator[bytes]: SSE frames in the caller's dialect

        Raises:
            AppError: Failure before the first backend chunk
        """
        started = time.monotonic()
        model = _model_label(body)
        try:
            model, request = await self._prepare(dialect, body, api_key)
            request.stream = True
            upstream = self.client.stream_chat(request.to_backend_payload(), request.timeout)
            try:
                first_chunk = await anext(upstream)
            except StopAsyncIteration:
                first_chunk = b""
        except Exception as e:
            error = map_backend_error(e, model)
            logger.error("Chat stream failed to open (model=%s): %s", model, error.message)
            await self._record(api_key, model, context, started, True, error=error.message)
            if error is e:
                raise
            raise error from e

        translator = create_stream_translator(dialect, model, request.include_reasoning)
        return self._relay(translator, upstream, first_chunk, api_key, model, context, started)

    async def _relay(
        self,
        translator: StreamTranslator,
        upstream: AsyncGenerator[bytes, None],
        first_chunk: bytes,
        api_key: ApiKeyModel,
        model: str,
        context: RequestContext,
        started: float,
    ) -> AsyncGenerator[bytes, None]:
        stream_error: Optional[str] = None
        try:
            for frame in translator.feed(first_chunk):
                yield frame
            if not translator.closed:
                async for chunk in upstream:
                    for frame in translator.feed(chunk):
                        yield frame
                    if translator.closed:
                        break
            for frame in translator.finish():
                yield frame
        except (asyncio.CancelledError, GeneratorExit):
            stream_error = "client_disconnected"
            translator.abort()
            raise
        except Exception as e:
            error = map_backend_error(e, model)
            stream_error = error.message
            logger.error("Chat stream interrupted (model=%s): %s", model, error.message)
            for frame in translator.fail(error):
                yield frame
        finally:
            # client disconnect triggers cancellation, shield the cleanup
            with anyio.CancelScope(shield=True):
                await upstream.aclose()
                state = translator.state
                await self._record(
                    api_key,
                    model,
                    context,
                    started,
                    True,
                    _Usage(state.prompt_tokens, state.completion_tokens),
                    error=stream_error,
                )

    async def embeddings(
        self,
        body: Any,
        api_key: ApiKeyModel,
        context: RequestContext,
    ) -> dict[str, Any]:
        """
        OpenAI embeddings request via /api/embed

        Raises:
            AppError: Validation, access or classified backend failure
        """
        started = time.monotonic()
        model = _model_label(body)
        try:
            model = require_model_name(body)
            self.api_key_service.ensure_model_access(api_key, model)
            resolved = await self.model_service.resolve(model)
            request = self.openai_normalizer.normalize_embedding(
                body, resolved.backend_name, resolved.overrides
            )
            result = await self.client.embed(request.to_backend_payload(), request.timeout)
        except Exception as e:
            error = map_backend_error(e, model)
            logger.error("Embedding request failed (model=%s): %s", model, error.message)
            await self._record(api_key, model, context, started, False, error=error.message)
            if error is e:
                raise
            raise error from e

        await self._record(
            api_key,
            model,
            context,
            started,
            False,
            _Usage(as_int(result.get("prompt_eval_count")), 0),
        )
        encoding_format = body.get("encoding_format") or "float"
        return to_openai_embeddings(result, model, encoding_format)
