import json

import httpx
import pytest
from conftest import RecordingHandler, ndjson
from gateway_client import create_key, gateway_client, sse_events

from ollama_gateway.config import get_settings

USER = [{"role": "user", "content": "Hello"}]


@pytest.fixture(autouse=True)
def _open_admin(monkeypatch):
    monkeypatch.delenv("ADMIN_USERNAME", raising=False)
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.mark.asyncio
async def test_messages_stream_thinking_then_text(db_session, usage_recorder):
    key = await create_key(db_session)
    body = ndjson(
        {"message": {"role": "assistant", "content": "", "thinking": "The user greets"}, "done": False},
        {"message": {"content": "Hi", "thinking": "."}, "done": False},
        {"message": {"content": "!"}, "done": True, "prompt_eval_count": 7, "eval_count": 5},
    )
    handler = RecordingHandler(lambda request: httpx.Response(200, content=body))

    async with gateway_client(db_session, usage_recorder, handler) as client:
        resp = await client.post(
            "/anthropic/v1/messages",
            headers={"x-api-key": key, "anthropic-version": "2023-01-01"},
            json={
                "model": "qwen3",
                "max_tokens": 128,
                "stream": True,
                "thinking": {"type": "enabled", "budget_tokens": 512},
                "messages": USER,
            },
        )

    assert resp.status_code == 200, resp.text
    assert resp.headers["anthropic-version"] == "2023-01-01"
    assert resp.headers["content-type"].startswith("text/event-stream")
    assert handler.last_json["think"] is True
    assert handler.last_json["options"] == {"num_predict": 128}

    events = sse_events(resp.text)
    names = [name for name, _ in events]
    assert names[0] == "message_start"
    assert names[-3:] == ["message_delta", "message_stop", "done"]

    starts = [data for name, data in events if name == "content_block_start"]
    assert [(block["index"], block["content_block"]["type"]) for block in starts] == [
        (0, "thinking"),
        (1, "text"),
    ]
    deltas = [data["delta"] for name, data in events if name == "content_block_delta"]
    assert deltas == [
        {"type": "thinking_delta", "thinking": "The user greets"},
        {"type": "thinking_delta", "thinking": "."},
        {"type": "text_delta", "text": "Hi"},
        {"type": "text_delta", "text": "!"},
    ]
    message_delta = events[-3][1]
    assert message_delta["delta"]["stop_reason"] == "end_turn"
    assert message_delta["usage"] == {"input_tokens": 7, "output_tokens": 5}


@pytest.mark.asyncio
async def test_messages_non_stream_with_tool_use(db_session, usage_recorder):
    key = await create_key(db_session)
    final = {
        "message": {
            "role": "assistant",
            "content": "",
            "tool_calls": [{"function": {"name": "lookup", "arguments": {"q": "ollama"}}}],
        },
        "done": True,
        "prompt_eval_count": 30,
        "eval_count": 10,
    }
    handler = RecordingHandler(lambda request: httpx.Response(200, json=final))

    async with gateway_client(db_session, usage_recorder, handler) as client:
        resp = await client.post(
            "/v1/messages",
            headers={"Authorization": f"Bearer {key}"},
            json={
                "model": "llama3",
                "max_tokens": 64,
                "system": "Use tools.",
                "tools": [{"name": "lookup", "input_schema": {"type": "object"}}],
                "messages": USER,
            },
        )

    assert resp.status_code == 200, resp.text
    assert resp.headers["anthropic-version"] == "2023-06-01"
    payload = resp.json()
    assert payload["type"] == "message"
    assert payload["stop_reason"] == "tool_use"
    assert payload["content"][0]["type"] == "tool_use"
    assert payload["content"][0]["input"] == {"q": "ollama"}

    sent = handler.last_json
    assert sent["messages"][0] == {"role": "system", "content": "Use tools."}
    assert sent["tools"][0]["function"]["name"] == "lookup"


@pytest.mark.asyncio
async def test_missing_api_key_uses_anthropic_envelope(db_session, usage_recorder):
    async with gateway_client(db_session, usage_recorder) as client:
        resp = await client.post(
            "/anthropic/v1/messages",
            headers={"anthropic-version": "2023-06-01"},
            json={"model": "llama3", "max_tokens": 8, "messages": USER},
        )

    assert resp.status_code == 401
    assert resp.headers["anthropic-version"] == "2023-06-01"
    payload = resp.json()
    assert payload["type"] == "error"
    assert payload["error"]["type"] == "authentication_error"
    assert payload["error"]["code"] == "missing_api_key"


@pytest.mark.asyncio
async def test_backend_unreachable_anthropic_envelope(db_session, usage_recorder):
    key = await create_key(db_session)
    async with gateway_client(db_session, usage_recorder) as client:
        resp = await client.post(
            "/anthropic/v1/messages",
            headers={"x-api-key": key},
            json={"model": "llama3", "max_tokens": 8, "stream": True, "messages": USER},
        )

    assert resp.status_code == 503
    assert resp.headers["anthropic-version"] == "2023-06-01"
    assert resp.json()["type"] == "error"
    assert resp.json()["error"]["type"] == "service_unavailable_error"


@pytest.mark.asyncio
async def test_invalid_messages(db_session, usage_recorder):
    key = await create_key(db_session)
    async with gateway_client(db_session, usage_recorder) as client:
        resp = await client.post(
            "/anthropic/v1/messages",
            headers={"x-api-key": key},
            json={"model": "llama3", "max_tokens": 8, "messages": "hello"},
        )

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_messages"


@pytest.mark.asyncio
async def test_uncaught_error_keeps_anthropic_envelope_and_version():
    from starlette.requests import Request

    from ollama_gateway.main import general_exception_handler

    request = Request(
        {
            "type": "http",
            "method": "POST",
            "scheme": "http",
            "server": ("test", 80),
            "path": "/anthropic/v1/messages",
            "root_path": "",
            "query_string": b"",
            "headers": [(b"anthropic-version", b"2023-01-01")],
        }
    )
    resp = await general_exception_handler(request, RuntimeError("boom"))

    assert resp.status_code == 500
    assert resp.headers["anthropic-version"] == "2023-01-01"
    payload = json.loads(resp.body)
    assert payload["type"] == "error"
    assert payload["error"]["type"] == "server_error"
