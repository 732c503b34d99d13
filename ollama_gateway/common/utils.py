"""
Utility Functions Module

Provides general utility functions such as API Key and identifier generation.
"""

import json
import secrets
from typing import Any, Optional

from ollama_gateway.common.time import epoch_millis
from ollama_gateway.config import get_settings


def generate_api_key(
    prefix: Optional[str] = None,
    length: Optional[int] = None
) -> str:
    """
    Generate random API Key

    Uses the secrets module to produce a cryptographically secure token.

    Args:
        prefix: Key prefix, defaults to API_KEY_PREFIX
        length: Key length (excluding prefix), defaults to API_KEY_LENGTH

    Returns:
        str: Generated API Key, e.g. "sk-a1b2c3..."
    """
    settings = get_settings()
    prefix = prefix or settings.API_KEY_PREFIX
    length = length or settings.API_KEY_LENGTH

    # token_hex returns two hex chars per byte
    random_part = secrets.token_hex(length // 2)

    return f"{prefix}{random_part}"


def generate_tool_call_id() -> str:
    """Tool call id in the form call_<ms timestamp>_<6 hex>."""
    return f"call_{epoch_millis()}_{secrets.token_hex(3)}"


def generate_tool_use_id(index: int) -> str:
    """Fallback Anthropic tool_use id for tool calls the backend left unnamed."""
    return f"toolu_{epoch_millis()}_{index}"


def generate_completion_id() -> str:
    return f"chatcmpl-{epoch_millis()}"


def generate_message_id() -> str:
    return f"msg_{epoch_millis()}"


def parse_json_object(value: Any) -> Any:
    """
    Decode tool call arguments into an object

    Strings holding a JSON document are decoded; anything that is not valid JSON
    comes back unchanged. Non-string values are returned as they are.
    """
    if not isinstance(value, str):
        return value
    stripped = value.strip()
    if not stripped:
        return {}
    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        return value


def dump_json_arguments(value: Any) -> str:
    """Serialize tool call arguments to the string form OpenAI clients expect."""
    if isinstance(value, str):
        return value
    if value is None:
        return "{}"
    return json.dumps(value, ensure_ascii=False)
