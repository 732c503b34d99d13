"""
Streaming Protocol Translator

Consumes Ollama's NDJSON chat stream and produces SSE frames in the caller's
dialect, while accumulating text, thinking, tool calls and token counts for
usage logging.

Lifecycle: AWAITING_FIRST_CHUNK -> STREAMING -> FINALIZING -> CLOSED.
A transport error or a client disconnect moves straight to CLOSED.

Per NDJSON event, in order:
1. append `message.content` to the accumulated text
2. append `message.thinking` to the accumulated thinking
3. emit dialect frames
4. replace the tracked tool-call list with a non-empty `message.tool_calls`
5. take `prompt_eval_count` / `eval_count` (cumulative) when present
6. finalize on `done`

The translators only turn bytes into frames; reading the backend and writing
to the client belong to the caller.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from ollama_gateway.common.errors import AppError, Dialect
from ollama_gateway.common.utils import generate_completion_id, generate_message_id
from ollama_gateway.protocol.ndjson import NDJSONDecoder
from ollama_gateway.protocol.responses import (
    anthropic_stop_reason,
    anthropic_usage,
    as_int,
    openai_finish_reason,
    openai_usage,
)
from ollama_gateway.protocol.sse import SSE_DONE, encode_sse
from ollama_gateway.protocol.tools import to_anthropic_tool_use, to_openai_tool_call


class StreamPhase(str, Enum):
    AWAITING_FIRST_CHUNK = "awaiting_first_chunk"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    CLOSED = "closed"


@dataclass
class BlockState:
    """One lazily opened Anthropic content block"""

    started: bool = False
    open: bool = False
    index: Optional[int] = None


@dataclass
class TranslatorState:
    """
    Mutable per-request translation state

    Block indices come from `next_block_index`, assigned in first-seen order
    and never reused.
    """

    text: str = ""
    thinking: str = ""
    tool_calls: list[dict[str, Any]] = field(default_factory=list)
    saw_tool_calls: bool = False
    prompt_tokens: int = 0
    completion_tokens: int = 0
    next_block_index: int = 0
    thinking_block: BlockState = field(default_factory=BlockState)
    text_block: BlockState = field(default_factory=BlockState)
    phase: StreamPhase = StreamPhase.AWAITING_FIRST_CHUNK
    finalized: bool = False

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def allocate_index(self) -> int:
        index = self.next_block_index
        self.next_block_index += 1
        return index


def _text_field(message: Mapping[str, Any], key: str) -> str:
    value = message.get(key)
    return value if isinstance(value, str) else ""


class StreamTranslator(ABC):
    """
    Base translator

    Args (constructor):
        model: Model name reported to the caller
        include_reasoning: False suppresses reasoning output
    """

    dialect: Dialect

    def __init__(self, model: str, include_reasoning: bool = True):
        self.model = model
        self.include_reasoning = include_reasoning
        self.state = TranslatorState()
        self._decoder = NDJSONDecoder()

    @property
    def closed(self) -> bool:
        return self.state.phase == StreamPhase.CLOSED

    def feed(self, chunk: bytes) -> list[bytes]:
        """Decode raw backend bytes and translate every complete event"""
        frames: list[bytes] = []
        if self.closed:
            return frames
        for event in self._decoder.feed(chunk):
            frames.extend(self.handle_event(event))
            if self.closed:
                break
        return frames

    def handle_event(self, event: Mapping[str, Any]) -> list[bytes]:
        """Apply one NDJSON event; nothing is processed after `done`"""
        state = self.state
        if state.phase in (StreamPhase.FINALIZING, StreamPhase.CLOSED):
            return []

        frames: list[bytes] = []
        if state.phase == StreamPhase.AWAITING_FIRST_CHUNK:
            frames.extend(self.start_frames())
            state.phase = StreamPhase.STREAMING

        message = event.get("message")
        if not isinstance(message, Mapping):
            message = {}
        content = _text_field(message, "content")
        thinking = _text_field(message, "thinking")
        signature = _text_field(message, "signature")
        tool_calls = message.get("tool_calls")
        if not isinstance(tool_calls, list):
            tool_calls = []
        tool_calls = [call for call in tool_calls if isinstance(call, dict)]

        state.text += content
        state.thinking += thinking
        frames.extend(self.delta_frames(content, thinking, signature, tool_calls))

        if tool_calls:
            state.tool_calls = list(tool_calls)
            state.saw_tool_calls = True

        if event.get("prompt_eval_count") is not None:
            state.prompt_tokens = as_int(event["prompt_eval_count"])
        if event.get("eval_count") is not None:
            state.completion_tokens = as_int(event["eval_count"])

        if event.get("done"):
            frames.extend(self.finalize())
        return frames

    def finish(self) -> list[bytes]:
        """
        Backend stream ended

        Decodes any unterminated trailing line, then finalizes if `done` never arrived.
        """
        if self.state.phase in (StreamPhase.FINALIZING, StreamPhase.CLOSED):
            return []
        frames: list[bytes] = []
        for event in self._decoder.flush():
            frames.extend(self.handle_event(event))
        if not self.closed:
            frames.extend(self.finalize())
        return frames

    def finalize(self) -> list[bytes]:
        state = self.state
        if state.phase == StreamPhase.AWAITING_FIRST_CHUNK:
            frames = self.start_frames()
        else:
            frames = []
        state.phase = StreamPhase.FINALIZING
        frames.extend(self.final_frames())
        state.finalized = True
        state.phase = StreamPhase.CLOSED
        return frames

    def fail(self, error: AppError) -> list[bytes]:
        """Best-effort error frames for an already open stream, then close"""
        if self.closed:
            return []
        self.state.phase = StreamPhase.CLOSED
        return self.error_frames(error)

    def abort(self) -> None:
        """Client went away: close without writing anything"""
        self.state.phase = StreamPhase.CLOSED

    @abstractmethod
    def start_frames(self) -> list[bytes]:
        pass

    @abstractmethod
    def delta_frames(
        self,
        content: str,
        thinking: str,
        signature: str,
        tool_calls: list[dict[str, Any]],
    ) -> list[bytes]:
        pass

    @abstractmethod
    def final_frames(self) -> list[bytes]:
        pass

    @abstractmethod
    def error_frames(self, error: AppError) -> list[bytes]:
        pass


class OpenAIStreamTranslator(StreamTranslator):
    """
    chat.completion.chunk frames terminated by `data: [DONE]`

    The first chunk carries only the assistant role. Chunks with an empty
    delta are never written, except for the closing chunk which holds
    finish_reason and usage.
    """

    dialect = Dialect.OPENAI

    def __init__(self, model: str, include_reasoning: bool = True):
        super().__init__(model, include_reasoning)
        self.completion_id = generate_completion_id()
        self.created = int(time.time())

    def _chunk(
        self,
        delta: dict[str, Any],
        finish_reason: Optional[str] = None,
        usage: Optional[dict[str, int]] = None,
    ) -> bytes:
        payload: dict[str, Any] = {
            "id": self.completion_id,
            "object": "chat.completion.chunk",
            "created": self.created,
            "model": self.model,
            "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
        }
        if usage is not None:
            payload["usage"] = usage
        return encode_sse(payload)

    def start_frames(self) -> list[bytes]:
        return [self._chunk({"role": "assistant"})]

    def delta_frames(self, content, thinking, signature, tool_calls) -> list[bytes]:
        delta: dict[str, Any] = {}
        if content:
            delta["content"] = content
        if thinking and self.include_reasoning:
            delta["reasoning_content"] = thinking
        if tool_calls:
            delta["tool_calls"] = [
                to_openai_tool_call(call, index) for index, call in enumerate(tool_calls)
            ]
        return [self._chunk(delta)] if delta else []

    def final_frames(self) -> list[bytes]:
        state = self.state
        return [
            self._chunk(
                {},
                finish_reason=openai_finish_reason(state.saw_tool_calls),
                usage=openai_usage(state.prompt_tokens, state.completion_tokens),
            ),
            SSE_DONE,
        ]

    def error_frames(self, error: AppError) -> list[bytes]:
        return [encode_sse(error.to_dict(Dialect.OPENAI)), SSE_DONE]


class AnthropicStreamTranslator(StreamTranslator):
    """
    Named-event Messages API stream

    message_start, then lazily opened thinking and text blocks, then at
    finalization: stop thinking, stop text, one start/stop pair per tool call,
    message_delta, message_stop and a closing `done` event.
    """

    dialect = Dialect.ANTHROPIC

    def __init__(self, model: str, include_reasoning: bool = True):
        super().__init__(model, include_reasoning)
        self.message_id = generate_message_id()

    def start_frames(self) -> list[bytes]:
        return [
            encode_sse(
                {
                    "type": "message_start",
                    "message": {
                        "id": self.message_id,
                        "type": "message",
                        "role": "assistant",
                        "content": [],
                        "model": self.model,
                        "stop_reason": None,
                        "stop_sequence": None,
                        "usage": anthropic_usage(0, 0),
                    },
                },
                event="message_start",
            )
        ]

    def _open(self, block: BlockState, content_block: dict[str, Any]) -> list[bytes]:
        if block.started:
            return []
        block.index = self.state.allocate_index()
        block.started = True
        block.open = True
        return [
            encode_sse(
                {
                    "type": "content_block_start",
                    "index": block.index,
                    "content_block": content_block,
                },
                event="content_block_start",
            )
        ]

    def _close(self, block: BlockState) -> list[bytes]:
        if not block.open:
            return []
        block.open = False
        return [
            encode_sse(
                {"type": "content_block_stop", "index": block.index},
                event="content_block_stop",
            )
        ]

    def _delta(self, block: BlockState, delta: dict[str, Any]) -> bytes:
        return encode_sse(
            {"type": "content_block_delta", "index": block.index, "delta": delta},
            event="content_block_delta",
        )

    def delta_frames(self, content, thinking, signature, tool_calls) -> list[bytes]:
        state = self.state
        frames: list[bytes] = []

        if self.include_reasoning and (thinking or signature):
            frames.extend(self._open(state.thinking_block, {"type": "thinking", "thinking": ""}))
            if thinking:
                frames.append(
                    self._delta(state.thinking_block, {"type": "thinking_delta", "thinking": thinking})
                )
            if signature:
                frames.append(
                    self._delta(
                        state.thinking_block, {"type": "signature_delta", "signature": signature}
                    )
                )

        if content:
            frames.extend(self._open(state.text_block, {"type": "text", "text": ""}))
            frames.append(self._delta(state.text_block, {"type": "text_delta", "text": content}))

        return frames

    def final_frames(self) -> list[bytes]:
        state = self.state
        frames = self._close(state.thinking_block)
        frames.extend(self._close(state.text_block))

        for position, call in enumerate(state.tool_calls):
            index = state.allocate_index()
            frames.append(
                encode_sse(
                    {
                        "type": "content_block_start",
                        "index": index,
                        "content_block": to_anthropic_tool_use(call, position),
                    },
                    event="content_block_start",
                )
            )
            frames.append(
                encode_sse(
                    {"type": "content_block_stop", "index": index},
                    event="content_block_stop",
                )
            )

        frames.append(
            encode_sse(
                {
                    "type": "message_delta",
                    "delta": {
                        "stop_reason": anthropic_stop_reason(state.saw_tool_calls),
                        "stop_sequence": None,
                    },
                    "usage": anthropic_usage(state.prompt_tokens, state.completion_tokens),
                },
                event="message_delta",
            )
        )
        frames.append(encode_sse({"type": "message_stop"}, event="message_stop"))
        frames.append(encode_sse({"type": "done"}, event="done"))
        return frames

    def error_frames(self, error: AppError) -> list[bytes]:
        return [encode_sse(error.to_dict(Dialect.ANTHROPIC), event="error")]


def create_stream_translator(
    dialect: Dialect,
    model: str,
    include_reasoning: bool = True,
) -> StreamTranslator:
    if dialect == Dialect.ANTHROPIC:
        return AnthropicStreamTranslator(model, include_reasoning)
    return OpenAIStreamTranslator(model, include_reasoning)
