"""
OpenAI stream translator tests
"""

import json

from sse_helpers import parse_frames

from ollama_gateway.common.errors import UpstreamError
from ollama_gateway.protocol.stream import OpenAIStreamTranslator, StreamPhase


def _line(event: dict) -> bytes:
    return json.dumps(event).encode("utf-8") + b"\n"


def _deltas(parsed):
    return [data["choices"][0]["delta"] for _, data in parsed if isinstance(data, dict)]


def test_text_stream_framing():
    translator = OpenAIStreamTranslator("llama3")
    frames = translator.feed(_line({"message": {"role": "assistant", "content": "Hello"}, "done": False}))
    frames += translator.feed(_line({"message": {"content": " world"}, "done": False}))
    frames += translator.feed(
        _line({"message": {"content": ""}, "done": True, "prompt_eval_count": 4, "eval_count": 2})
    )

    parsed = parse_frames(frames)
    assert parsed[-1] == (None, "[DONE]")
    chunks = [data for _, data in parsed[:-1]]

    assert all(chunk["object"] == "chat.completion.chunk" for chunk in chunks)
    assert all(chunk["model"] == "llama3" for chunk in chunks)
    assert len({chunk["id"] for chunk in chunks}) == 1

    assert _deltas(parsed) == [
        {"role": "assistant"},
        {"content": "Hello"},
        {"content": " world"},
        {},
    ]
    final = chunks[-1]
    assert final["choices"][0]["finish_reason"] == "stop"
    assert final["usage"] == {"prompt_tokens": 4, "completion_tokens": 2, "total_tokens": 6}
    assert translator.state.phase == StreamPhase.CLOSED
    assert translator.state.text == "Hello world"


def test_tool_call_stream_finishes_with_tool_calls():
    translator = OpenAIStreamTranslator("llama3")
    frames = translator.feed(
        _line(
            {
                "message": {
                    "role": "assistant",
                    "content": "",
                    "tool_calls": [
                        {"function": {"name": "get_weather", "arguments": {"city": "Paris"}}}
                    ],
                },
                "done": False,
            }
        )
        + _line({"message": {"content": ""}, "done": True, "prompt_eval_count": 12, "eval_count": 7})
    )

    parsed = parse_frames(frames)
    deltas = _deltas(parsed)
    tool_delta = deltas[1]["tool_calls"]
    assert len(tool_delta) == 1
    assert tool_delta[0]["index"] == 0
    assert tool_delta[0]["type"] == "function"
    assert tool_delta[0]["id"].startswith("call_")
    assert tool_delta[0]["function"] == {
        "name": "get_weather",
        "arguments": '{"city": "Paris"}',
    }

    final = parsed[-2][1]
    assert final["choices"][0]["finish_reason"] == "tool_calls"
    assert final["usage"]["total_tokens"] == 19
    assert parsed[-1][1] == "[DONE]"


def test_reasoning_content_and_suppression():
    event = _line({"message": {"thinking": "hmm", "content": "ok"}, "done": True})

    shown = _deltas(parse_frames(OpenAIStreamTranslator("m").feed(event)))
    assert {"content": "ok", "reasoning_content": "hmm"} in shown

    hidden_translator = OpenAIStreamTranslator("m", include_reasoning=False)
    hidden = _deltas(parse_frames(hidden_translator.feed(event)))
    assert {"content": "ok"} in hidden
    assert all("reasoning_content" not in delta for delta in hidden)
    # still accumulated for logging
    assert hidden_translator.state.thinking == "hmm"


def test_empty_deltas_are_not_written():
    translator = OpenAIStreamTranslator("m")
    frames = translator.feed(_line({"message": {"content": ""}, "done": False}))
    frames += translator.feed(_line({"message": {"content": ""}, "done": False}))
    assert _deltas(parse_frames(frames)) == [{"role": "assistant"}]


def test_events_after_done_are_ignored():
    translator = OpenAIStreamTranslator("m")
    translator.feed(_line({"message": {"content": "a"}, "done": True}))
    assert translator.feed(_line({"message": {"content": "b"}, "done": False})) == []
    assert translator.finish() == []
    assert translator.state.text == "a"


def test_split_lines_across_chunks():
    payload = _line({"message": {"content": "Hi"}, "done": False}) + _line(
        {"message": {"content": ""}, "done": True, "eval_count": 1}
    )
    translator = OpenAIStreamTranslator("m")
    frames = []
    for byte in payload:
        frames.extend(translator.feed(bytes([byte])))
    assert _deltas(parse_frames(frames)) == [{"role": "assistant"}, {"content": "Hi"}, {}]


def test_stream_without_done_is_finalized():
    translator = OpenAIStreamTranslator("m")
    frames = translator.feed(_line({"message": {"content": "partial"}, "done": False}))
    frames += translator.feed(b'{"message": {"content": "!"}}')
    frames += translator.finish()

    parsed = parse_frames(frames)
    assert _deltas(parsed) == [{"role": "assistant"}, {"content": "partial"}, {"content": "!"}, {}]
    assert parsed[-1][1] == "[DONE]"
    assert translator.state.finalized


def test_counters_are_cumulative_not_summed():
    translator = OpenAIStreamTranslator("m")
    translator.feed(_line({"message": {"content": "a"}, "prompt_eval_count": 3, "eval_count": 1}))
    translator.feed(_line({"message": {"content": "b"}, "done": True, "prompt_eval_count": 3, "eval_count": 2}))
    assert translator.state.prompt_tokens == 3
    assert translator.state.completion_tokens == 2
    assert translator.state.total_tokens == 5


def test_fail_writes_error_then_done():
    translator = OpenAIStreamTranslator("m")
    translator.feed(_line({"message": {"content": "a"}, "done": False}))
    error = UpstreamError(message="Stream processing error", code="server_error")

    parsed = parse_frames(translator.fail(error))
    assert parsed[0][1]["error"]["message"] == "Stream processing error"
    assert parsed[0][1]["error"]["type"] == "server_error"
    assert parsed[1][1] == "[DONE]"
    assert translator.closed
    assert translator.fail(error) == []
