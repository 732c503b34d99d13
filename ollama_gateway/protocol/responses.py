"""
Non-stream Response Converter

Turns one final Ollama /api/chat object into an OpenAI chat.completion or an
Anthropic message. Token totals are always recomputed from the prompt and
completion counts.
"""

import base64
import struct
import time
from typing import Any, Mapping

from ollama_gateway.common.utils import generate_completion_id, generate_message_id
from ollama_gateway.protocol.tools import to_anthropic_tool_use, to_openai_tool_call


def as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def openai_finish_reason(saw_tool_calls: bool) -> str:
    return "tool_calls" if saw_tool_calls else "stop"


def anthropic_stop_reason(saw_tool_calls: bool) -> str:
    return "tool_use" if saw_tool_calls else "end_turn"


def openai_usage(prompt_tokens: int, completion_tokens: int) -> dict[str, int]:
    return {
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "total_tokens": prompt_tokens + completion_tokens,
    }


def anthropic_usage(prompt_tokens: int, completion_tokens: int) -> dict[str, int]:
    return {"input_tokens": prompt_tokens, "output_tokens": completion_tokens}


def _message_parts(final: Mapping[str, Any]) -> tuple[str, str, list[dict[str, Any]]]:
    message = final.get("message")
    if not isinstance(message, Mapping):
        message = {}
    content = message.get("content") if isinstance(message.get("content"), str) else ""
    thinking = message.get("thinking") if isinstance(message.get("thinking"), str) else ""
    tool_calls = message.get("tool_calls")
    if not isinstance(tool_calls, list):
        tool_calls = []
    return content, thinking, [call for call in tool_calls if isinstance(call, dict)]


def to_openai_completion(
    final: Mapping[str, Any],
    model: str,
    include_reasoning: bool = True,
) -> dict[str, Any]:
    """
    Build an OpenAI chat.completion response

    Args:
        final: Ollama final response object
        model: Model name reported back to the caller
        include_reasoning: False hides reasoning_content
    """
    content, thinking, tool_calls = _message_parts(final)
    prompt_tokens = as_int(final.get("prompt_eval_count"))
    completion_tokens = as_int(final.get("eval_count"))

    message: dict[str, Any] = {"role": "assistant", "content": content}
    if include_reasoning and thinking.strip():
        message["reasoning_content"] = thinking
    if tool_calls:
        message["tool_calls"] = [to_openai_tool_call(call) for call in tool_calls]

    return {
        "id": generate_completion_id(),
        "object": "chat.completion",
        "created": int(time.time()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": message,
                "finish_reason": openai_finish_reason(bool(tool_calls)),
            }
        ],
        "usage": openai_usage(prompt_tokens, completion_tokens),
    }


def to_anthropic_message(
    final: Mapping[str, Any],
    model: str,
    include_reasoning: bool = True,
) -> dict[str, Any]:
    """
    Build an Anthropic message response

    Content blocks are ordered thinking, text, then one tool_use per tool call.
    """
    content, thinking, tool_calls = _message_parts(final)
    prompt_tokens = as_int(final.get("prompt_eval_count"))
    completion_tokens = as_int(final.get("eval_count"))

    blocks: list[dict[str, Any]] = []
    if include_reasoning and thinking.strip():
        thinking_block: dict[str, Any] = {"type": "thinking", "thinking": thinking}
        signature = (final.get("message") or {}).get("signature")
        if signature:
            thinking_block["signature"] = signature
        blocks.append(thinking_block)
    if content:
        blocks.append({"type": "text", "text": content})
    blocks.extend(to_anthropic_tool_use(call, index) for index, call in enumerate(tool_calls))

    return {
        "id": generate_message_id(),
        "type": "message",
        "role": "assistant",
        "model": model,
        "content": blocks,
        "stop_reason": anthropic_stop_reason(bool(tool_calls)),
        "stop_sequence": None,
        "usage": anthropic_usage(prompt_tokens, completion_tokens),
    }


def to_openai_embeddings(
    result: Mapping[str, Any],
    model: str,
    encoding_format: str = "float",
) -> dict[str, Any]:
    """
    Build an OpenAI embeddings list from an /api/embed result

    encoding_format "base64" packs each vector as little-endian float32.
    """
    vectors = result.get("embeddings")
    if not isinstance(vectors, list):
        vectors = []

    data = []
    for index, vector in enumerate(vectors):
        embedding: Any = vector
        if encoding_format == "base64":
            packed = struct.pack(f"<{len(vector)}f", *vector)
            embedding = base64.b64encode(packed).decode("ascii")
        data.append({"object": "embedding", "index": index, "embedding": embedding})

    prompt_tokens = as_int(result.get("prompt_eval_count"))
    return {
        "object": "list",
        "data": data,
        "model": model,
        "usage": {"prompt_tokens": prompt_tokens, "total_tokens": prompt_tokens},
    }
