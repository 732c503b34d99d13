"""
Anthropic messages request normalization
"""

from typing import Any, Mapping, Optional

from ollama_gateway.common.errors import Dialect
from ollama_gateway.domain.request import NormalizedRequest
from ollama_gateway.protocol.base import (
    RequestNormalizer,
    as_mapping,
    first_present,
    wants_stream,
)
from ollama_gateway.protocol.messages import convert_anthropic_messages
from ollama_gateway.protocol.reasoning import resolve_reasoning
from ollama_gateway.protocol.tools import (
    anthropic_tool_choice_to_backend,
    anthropic_tools_to_backend,
)

ANTHROPIC_NAMED_FIELDS = (
    ("temperature", "temperature"),
    ("top_p", "top_p"),
    ("top_k", "top_k"),
    ("presence_penalty", "presence_penalty"),
    ("frequency_penalty", "frequency_penalty"),
    ("max_tokens", "num_predict"),
    ("max_output_tokens", "num_predict"),
)


class AnthropicRequestNormalizer(RequestNormalizer):
    """Normalizes POST /anthropic/v1/messages bodies"""

    dialect = Dialect.ANTHROPIC
    route = "/anthropic/v1/messages"

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
            request_think=first_present(
                body.get("thinking"), body.get("think"), extra_body.get("think")
            ),
            reasoning=first_present(body.get("reasoning"), extra_body.get("reasoning")),
        )
        messages = await convert_anthropic_messages(
            body.get("system"), body.get("messages"), self.fetcher
        )

        options = self.build_options(body, backend_model, overrides, ANTHROPIC_NAMED_FIELDS)
        stop_sequences = body.get("stop_sequences")
        if isinstance(stop_sequences, list) and stop_sequences:
            options["stop"] = stop_sequences

        response_format = as_mapping(body.get("response_format"))
        output_format = "json" if response_format.get("type") == "json" else body.get("format")

        return NormalizedRequest(
            model=backend_model,
            messages=messages,
            stream=wants_stream(body),
            options=options,
            think=directive.think,
            tools=anthropic_tools_to_backend(body.get("tools")) or None,
            tool_choice=anthropic_tool_choice_to_backend(
                first_present(body.get("tool_choice"), extra_body.get("tool_choice"))
            ),
            format=output_format,
            keep_alive=self.resolve_keep_alive(body, overrides),
            timeout=self.resolve_timeout(body, overrides, fallback=None),
            include_reasoning=directive.include_reasoning,
        )
