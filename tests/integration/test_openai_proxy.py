import base64
import struct

import httpx
import pytest
from conftest import RecordingHandler, ndjson
from gateway_client import create_key, gateway_client, sse_events

from ollama_gateway.config import get_settings
from ollama_gateway.domain.log import UsageLogQuery
from ollama_gateway.domain.model import ModelConfigCreate
from ollama_gateway.repositories.sqlalchemy import (
    SQLAlchemyModelConfigRepository,
    SQLAlchemyUsageLogRepository,
)

USER = [{"role": "user", "content": "Hello"}]


@pytest.fixture(autouse=True)
def _open_admin(monkeypatch):
    monkeypatch.delenv("ADMIN_USERNAME", raising=False)
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


async def _logs(db_session):
    items, _ = await SQLAlchemyUsageLogRepository(db_session).query(UsageLogQuery())
    return items


@pytest.mark.asyncio
async def test_chat_completion_without_reasoning(db_session, usage_recorder):
    key = await create_key(db_session)
    handler = RecordingHandler(
        lambda request: httpx.Response(
            200,
            json={
                "model": "llama3",
                "message": {"role": "assistant", "content": "Hi there"},
                "done": True,
                "prompt_eval_count": 9,
                "eval_count": 3,
            },
        )
    )

    async with gateway_client(db_session, usage_recorder, handler) as client:
        resp = await client.post(
            "/v1/chat/completions",
            headers={"Authorization": f"Bearer {key}"},
            json={"model": "llama3", "messages": USER, "temperature": 0.2},
        )

    assert resp.status_code == 200, resp.text
    payload = resp.json()
    assert payload["object"] == "chat.completion"
    assert payload["model"] == "llama3"
    assert payload["choices"][0]["message"] == {"role": "assistant", "content": "Hi there"}
    assert payload["choices"][0]["finish_reason"] == "stop"
    assert payload["usage"] == {"prompt_tokens": 9, "completion_tokens": 3, "total_tokens": 12}

    sent = handler.last_json
    assert sent["stream"] is False
    assert sent["options"] == {"temperature": 0.2}
    assert "think" not in sent

    [log] = await _logs(db_session)
    assert log.status == "success"
    assert log.endpoint == "/v1/chat/completions"


@pytest.mark.asyncio
async def test_chat_completion_stream_with_tool_call(db_session, usage_recorder):
    key = await create_key(db_session)
    body = ndjson(
        {
            "message": {
                "role": "assistant",
                "content": "",
                "tool_calls": [{"function": {"name": "get_weather", "arguments": {"city": "Paris"}}}],
            },
            "done": False,
        },
        {"message": {"content": ""}, "done": True, "prompt_eval_count": 20, "eval_count": 6},
    )

    async with gateway_client(db_session, usage_recorder, lambda request: httpx.Response(200, content=body)) as client:
        resp = await client.post(
            "/v1/chat/completions",
            headers={"Authorization": f"Bearer {key}"},
            json={
                "model": "llama3",
                "messages": USER,
                "stream": True,
                "tools": [{"type": "function", "function": {"name": "get_weather", "parameters": {}}}],
            },
        )

    assert resp.status_code == 200, resp.text
    assert resp.headers["content-type"].startswith("text/event-stream")
    assert resp.headers["cache-control"] == "no-cache"
    assert resp.headers["x-accel-buffering"] == "no"

    events = sse_events(resp.text)
    assert events[-1] == (None, "[DONE]")
    chunks = [data for _, data in events[:-1]]
    assert chunks[0]["choices"][0]["delta"] == {"role": "assistant"}
    tool_call = chunks[1]["choices"][0]["delta"]["tool_calls"][0]
    assert tool_call["function"] == {"name": "get_weather", "arguments": '{"city": "Paris"}'}
    assert chunks[-1]["choices"][0]["finish_reason"] == "tool_calls"
    assert chunks[-1]["usage"]["total_tokens"] == 26

    [log] = await _logs(db_session)
    assert log.is_stream is True
    assert log.tokens == 26


@pytest.mark.asyncio
async def test_reasoning_effort_is_forwarded_as_think(db_session, usage_recorder):
    key = await create_key(db_session)
    handler = RecordingHandler(
        lambda request: httpx.Response(
            200, json={"message": {"content": "4", "thinking": "2+2"}, "done": True}
        )
    )
    async with gateway_client(db_session, usage_recorder, handler) as client:
        resp = await client.post(
            "/v1/chat/completions",
            headers={"Authorization": f"Bearer {key}"},
            json={"model": "qwen3", "messages": USER, "reasoning_effort": "high"},
        )

    assert handler.last_json["think"] == "high"
    assert resp.json()["choices"][0]["message"]["reasoning_content"] == "2+2"


@pytest.mark.asyncio
async def test_models_list_filtered_by_key(db_session, usage_recorder):
    repo = SQLAlchemyModelConfigRepository(db_session)
    await repo.create(ModelConfigCreate(backend_name="llama3:latest", display_name="llama"))
    await repo.create(ModelConfigCreate(backend_name="qwen3:8b"))
    await repo.create(ModelConfigCreate(backend_name="phi3:latest", enabled=False))
    key = await create_key(db_session, allowed_models=["llama3"])

    async with gateway_client(db_session, usage_recorder) as client:
        resp = await client.get("/v1/models", headers={"Authorization": f"Bearer {key}"})

    assert resp.status_code == 200, resp.text
    payload = resp.json()
    assert payload["object"] == "list"
    assert [item["id"] for item in payload["data"]] == ["llama"]
    assert payload["data"][0]["owned_by"] == "ollama"
    assert isinstance(payload["data"][0]["created"], int)


@pytest.mark.asyncio
async def test_model_access_denied(db_session, usage_recorder):
    key = await create_key(db_session, allowed_models=["llama3"])
    async with gateway_client(db_session, usage_recorder) as client:
        resp = await client.post(
            "/v1/chat/completions",
            headers={"Authorization": f"Bearer {key}"},
            json={"model": "qwen3:8b", "messages": USER},
        )

    assert resp.status_code == 403
    error = resp.json()["error"]
    assert error["type"] == "permission_error"
    assert error["code"] == "model_access_denied"
    assert error["param"] == "model"


@pytest.mark.asyncio
@pytest.mark.parametrize("stream", [False, True])
async def test_backend_unreachable(db_session, usage_recorder, stream):
    key = await create_key(db_session)
    async with gateway_client(db_session, usage_recorder) as client:
        resp = await client.post(
            "/v1/chat/completions",
            headers={"Authorization": f"Bearer {key}"},
            json={"model": "llama3", "messages": USER, "stream": stream},
        )

    assert resp.status_code == 503
    assert resp.headers["content-type"].startswith("application/json")
    error = resp.json()["error"]
    assert error["type"] == "service_unavailable_error"
    assert error["code"] == "service_unavailable"

    [log] = await _logs(db_session)
    assert log.status == "error"
    assert log.is_stream is stream


@pytest.mark.asyncio
async def test_backend_model_not_found(db_session, usage_recorder):
    key = await create_key(db_session)
    def handler(request):
        return httpx.Response(404, json={"error": "model \"ghost\" not found, try pulling it first"})

    async with gateway_client(db_session, usage_recorder, handler) as client:
        resp = await client.post(
            "/v1/chat/completions",
            headers={"Authorization": f"Bearer {key}"},
            json={"model": "ghost", "messages": USER, "stream": True},
        )

    assert resp.status_code == 404
    error = resp.json()["error"]
    assert error["code"] == "model_not_found"
    assert error["message"] == "model \"ghost\" not found, try pulling it first"


@pytest.mark.asyncio
async def test_missing_and_invalid_api_key(db_session, usage_recorder):
    async with gateway_client(db_session, usage_recorder) as client:
        missing = await client.post("/v1/chat/completions", json={"model": "llama3", "messages": USER})
        invalid = await client.post(
            "/v1/chat/completions",
            headers={"Authorization": "Bearer sk-nope"},
            json={"model": "llama3", "messages": USER},
        )

    assert missing.status_code == 401
    assert missing.json()["error"]["type"] == "authentication_error"
    assert missing.json()["error"]["code"] == "missing_api_key"
    assert invalid.status_code == 401
    assert invalid.json()["error"]["code"] == "invalid_api_key"


@pytest.mark.asyncio
async def test_invalid_request_bodies(db_session, usage_recorder):
    key = await create_key(db_session)
    headers = {"Authorization": f"Bearer {key}", "Content-Type": "application/json"}
    async with gateway_client(db_session, usage_recorder) as client:
        not_json = await client.post("/v1/chat/completions", headers=headers, content=b"{not json")
        no_model = await client.post("/v1/chat/completions", headers=headers, json={"messages": USER})
        conflict = await client.post(
            "/v1/chat/completions",
            headers=headers,
            json={"model": "m", "messages": USER, "reasoning": {"enabled": True, "effort": "low"}},
        )

    assert not_json.status_code == 400
    assert not_json.json()["error"]["code"] == "invalid_json"
    assert no_model.status_code == 400
    assert no_model.json()["error"]["code"] == "missing_model"
    assert conflict.status_code == 400
    assert conflict.json()["error"]["code"] == "conflicting_reasoning"


@pytest.mark.asyncio
async def test_embeddings_base64(db_session, usage_recorder):
    key = await create_key(db_session)
    handler = RecordingHandler(
        lambda request: httpx.Response(200, json={"embeddings": [[1.0, -0.5]], "prompt_eval_count": 2})
    )
    async with gateway_client(db_session, usage_recorder, handler) as client:
        resp = await client.post(
            "/v1/embeddings",
            headers={"Authorization": f"Bearer {key}"},
            json={"model": "nomic-embed-text", "input": ["hello"], "encoding_format": "base64"},
        )

    assert resp.status_code == 200, resp.text
    assert handler.requests[0].url.path == "/api/embed"
    embedding = resp.json()["data"][0]["embedding"]
    assert struct.unpack("<2f", base64.b64decode(embedding)) == (1.0, -0.5)


@pytest.mark.asyncio
@pytest.mark.parametrize("authorization", ["Basic dXNlcjpwYXNz", "KEY"])
async def test_authorization_without_bearer_scheme_is_missing(
    db_session, usage_recorder, authorization
):
    key = await create_key(db_session)
    value = key if authorization == "KEY" else authorization
    async with gateway_client(db_session, usage_recorder) as client:
        resp = await client.post(
            "/v1/chat/completions",
            headers={"Authorization": value},
            json={"model": "llama3", "messages": USER},
        )
        via_x_api_key = await client.get("/v1/models", headers={"x-api-key": key})

    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "missing_api_key"
    assert via_x_api_key.status_code == 200
