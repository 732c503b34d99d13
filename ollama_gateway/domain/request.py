"""
Normalized Request Model

Backend-native request shapes that both caller dialects are normalized into
before anything is sent to Ollama.
"""

from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Union

# Canonical reasoning directive: a boolean or an effort level
ThinkValue = Union[bool, Literal["low", "medium", "high"]]

THINK_LEVELS = ("low", "medium", "high")


@dataclass
class ChatMessage:
    """One message in Ollama /api/chat form"""

    role: str
    content: str = ""
    images: list[str] = field(default_factory=list)
    tool_calls: list[dict[str, Any]] = field(default_factory=list)
    tool_call_id: Optional[str] = None
    tool_name: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.content and not self.images and not self.tool_calls

    def to_backend(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.images:
            payload["images"] = list(self.images)
        if self.tool_calls:
            payload["tool_calls"] = [dict(call) for call in self.tool_calls]
        if self.tool_call_id:
            payload["tool_call_id"] = self.tool_call_id
        if self.tool_name:
            payload["tool_name"] = self.tool_name
        return payload


@dataclass
class NormalizedRequest:
    """
    Chat request in the backend's native shape

    `think` is either None or one of True, False, "low", "medium", "high".
    `timeout` is in seconds; 0 disables the deadline and None means the
    invoker's own default applies. `include_reasoning` is a gateway-side
    preference and is never sent to Ollama.
    """

    model: str
    messages: list[ChatMessage]
    stream: bool = False
    options: dict[str, Any] = field(default_factory=dict)
    think: Optional[ThinkValue] = None
    tools: Optional[list[dict[str, Any]]] = None
    tool_choice: Any = None
    format: Any = None
    keep_alive: Optional[Union[str, int, float]] = None
    timeout: Optional[float] = None
    include_reasoning: bool = True

    def to_backend_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_backend() for message in self.messages],
            "stream": self.stream,
            "options": dict(self.options),
        }
        if self.think is not None:
            payload["think"] = self.think
        if self.tools:
            payload["tools"] = self.tools
        if self.tool_choice is not None:
            payload["tool_choice"] = self.tool_choice
        if self.format is not None:
            payload["format"] = self.format
        if self.keep_alive is not None:
            payload["keep_alive"] = self.keep_alive
        return payload


@dataclass
class EmbedRequest:
    """Request for Ollama /api/embed"""

    model: str
    input: Union[str, list[str]]
    dimensions: Optional[int] = None
    truncate: Optional[bool] = None
    options: dict[str, Any] = field(default_factory=dict)
    keep_alive: Optional[Union[str, int, float]] = None
    timeout: Optional[float] = None

    def to_backend_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"model": self.model, "input": self.input}
        if self.dimensions is not None:
            payload["dimensions"] = self.dimensions
        if self.truncate is not None:
            payload["truncate"] = self.truncate
        if self.options:
            payload["options"] = dict(self.options)
        if self.keep_alive is not None:
            payload["keep_alive"] = self.keep_alive
        return payload
