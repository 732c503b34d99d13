"""
Server-Sent Events framing
"""

import json
from typing import Any, Optional

SSE_DONE = b"data: [DONE]\n\n"


def encode_sse(payload: Any, event: Optional[str] = None) -> bytes:
    """
    Encode one SSE frame

    Args:
        payload: JSON serializable data line
        event: Optional event name (Anthropic uses named events, OpenAI does not)

    Returns:
        bytes: Frame terminated by a blank line
    """
    data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    if event:
        return f"event: {event}\ndata: {data}\n\n".encode("utf-8")
    return f"data: {data}\n\n".encode("utf-8")
