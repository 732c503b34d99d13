"""
OpenAI chat-completions and embeddings request normalization
"""

from typing import Any, Mapping, Optional

from ollama_gateway.common.errors import Dialect, InvalidRequestError
from ollama_gateway.domain.request import EmbedRequest, NormalizedRequest
from ollama_gateway.protocol.base import (
    RequestNormalizer,
    as_mapping,
    first_present,
    wants_stream,
)
from ollama_gateway.protocol.messages import convert_openai_messages
from ollama_gateway.protocol.reasoning import resolve_reasoning

# (request field, Ollama option), later entries win
OPENAI_NAMED_FIELDS = (
    ("temperature", "temperature"),
    ("top_p", "top_p"),
    ("top_k", "top_k"),
    ("frequency_penalty", "frequency_penalty"),
    ("presence_penalty", "presence_penalty"),
    ("seed", "seed"),
    ("stop", "stop"),
    ("num_ctx", "num_ctx"),
    ("max_tokens", "num_predict"),
    ("max_completion_tokens", "num_predict"),
    ("num_predict", "num_predict"),
)


def openai_format(body: Mapping[str, Any]) -> Any:
    """response_format -> Ollama format ("json" or a JSON schema)"""
    response_format = body.get("response_format")
    if isinstance(response_format, Mapping):
        format_type = response_format.get("type")
        if format_type == "json_object":
            return "json"
        if format_type == "json_schema":
            schema = as_mapping(response_format.get("json_schema")).get("schema")
            return schema or "json"
    return body.get("format")


class OpenAIRequestNormalizer(RequestNormalizer):
    """Normalizes POST /v1/chat/completions bodies"""

    dialect = Dialect.OPENAI
    route = "/v1/chat/completions"

    async def normalize(
        self,
        body: Mapping[str, Any],
        backend_model: str,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> NormalizedRequest:
        overrides = as_mapping(overrides)
        extra_body = as_mapping(body.get("extra_body"))

        directive = resolve_reasoning(
            override_think=overrides.get("think"),
            request_think=first_present(body.get("think"), extra_body.get("think")),
            reasoning_effort=first_present(
                body.get("reasoning_effort"), extra_body.get("reasoning_effort")
            ),
            reasoning=first_present(body.get("reasoning"), extra_body.get("reasoning")),
        )
        messages = await convert_openai_messages(body.get("messages"), self.fetcher)

        tools = body.get("tools")
        return NormalizedRequest(
            model=backend_model,
            messages=messages,
            stream=wants_stream(body),
            options=self.build_options(body, backend_model, overrides, OPENAI_NAMED_FIELDS),
            think=directive.think,
            tools=tools if isinstance(tools, list) and tools else None,
            tool_choice=first_present(body.get("tool_choice"), extra_body.get("tool_choice")),
            format=openai_format(body),
            keep_alive=self.resolve_keep_alive(body, overrides),
            timeout=self.resolve_timeout(
                body, overrides, fallback=self.settings.DEFAULT_REQUEST_TIMEOUT
            ),
            include_reasoning=directive.include_reasoning,
        )

    def normalize_embedding(
        self,
        body: Mapping[str, Any],
        backend_model: str,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> EmbedRequest:
        """
        Convert a POST /v1/embeddings body

        Raises:
            InvalidRequestError: `input` is neither a string nor a list of strings
        """
        overrides = as_mapping(overrides)
        extra_body = as_mapping(body.get("extra_body"))

        embed_input = body.get("input")
        valid = isinstance(embed_input, str) or (
            isinstance(embed_input, list)
            and embed_input
            and all(isinstance(item, str) for item in embed_input)
        )
        if not valid:
            raise InvalidRequestError(
                message="'input' must be a string or a non-empty list of strings",
                code="invalid_input",
                param="input",
            )

        dimensions = body.get("dimensions")
        truncate = first_present(body.get("truncate"), extra_body.get("truncate"))
        return EmbedRequest(
            model=backend_model,
            input=embed_input,
            dimensions=dimensions if isinstance(dimensions, int) and dimensions > 0 else None,
            truncate=truncate if isinstance(truncate, bool) else None,
            options=self.build_options(body, backend_model, overrides, ()),
            keep_alive=self.resolve_keep_alive(body, overrides),
            timeout=self.resolve_timeout(
                body, overrides, fallback=self.settings.DEFAULT_REQUEST_TIMEOUT
            ),
        )
