"""
Message conversion tests
"""

import httpx
import pytest

from ollama_gateway.common.errors import InvalidRequestError
from ollama_gateway.protocol.images import ImageFetcher
from ollama_gateway.protocol.messages import (
    convert_anthropic_messages,
    convert_openai_messages,
    flatten_system_prompt,
)


@pytest.fixture
def fetcher():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/cat.png":
            return httpx.Response(200, content=b"\x89PNG", headers={"content-type": "image/png"})
        return httpx.Response(404)

    return ImageFetcher(timeout=1, max_bytes=1024, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_openai_text_and_developer_role(fetcher):
    messages = await convert_openai_messages(
        [
            {"role": "developer", "content": "Be brief."},
            {"role": "user", "content": [{"type": "text", "text": "Hello"}, {"type": "text", "text": "there"}]},
        ],
        fetcher,
    )
    assert [m.to_backend() for m in messages] == [
        {"role": "system", "content": "Be brief."},
        {"role": "user", "content": "Hello\nthere"},
    ]


@pytest.mark.asyncio
async def test_openai_images(fetcher):
    messages = await convert_openai_messages(
        [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "What is this?"},
                    {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}},
                    {"type": "image_url", "image_url": "https://img.test/cat.png"},
                    {"type": "image_url", "image_url": {"url": "https://img.test/missing.png"}},
                ],
            }
        ],
        fetcher,
    )
    assert messages[0].content == "What is this?"
    assert messages[0].images == ["AAAA", "iVBORw=="]


@pytest.mark.asyncio
async def test_openai_unusable_image_urls_are_dropped(fetcher):
    messages = await convert_openai_messages(
        [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "hi"},
                    {"type": "image_url", "image_url": {"url": "http://[::1/a.png"}},
                    {"type": "image_url", "image_url": {"url": 5}},
                    {"type": "image_url", "image_url": None},
                ],
            }
        ],
        fetcher,
    )
    assert messages[0].content == "hi"
    assert messages[0].images == []


@pytest.mark.asyncio
async def test_openai_tool_calls_and_results(fetcher):
    messages = await convert_openai_messages(
        [
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "id": "call_1",
                        "type": "function",
                        "function": {"name": "get_weather", "arguments": "{\"city\": \"Paris\"}"},
                    },
                    "garbage",
                ],
            },
            {"role": "tool", "tool_call_id": "call_1", "name": "get_weather", "content": "sunny"},
        ],
        fetcher,
    )
    assistant, tool = messages
    assert assistant.content == ""
    assert assistant.tool_calls == [
        {"id": "call_1", "type": "function", "function": {"name": "get_weather", "arguments": {"city": "Paris"}}}
    ]
    assert tool.to_backend() == {
        "role": "tool",
        "content": "sunny",
        "tool_call_id": "call_1",
        "tool_name": "get_weather",
    }


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "messages",
    [None, "hello", [{"role": "robot", "content": "x"}], ["not an object"]],
)
async def test_openai_invalid_messages(fetcher, messages):
    with pytest.raises(InvalidRequestError) as exc_info:
        await convert_openai_messages(messages, fetcher)
    assert exc_info.value.code == "invalid_messages"
    assert exc_info.value.param == "messages"


def test_flatten_system_prompt():
    assert flatten_system_prompt("hi") == "hi"
    assert flatten_system_prompt([{"type": "text", "text": "a"}, {"type": "image"}, "b"]) == "a\nb"
    assert flatten_system_prompt(None) is None


@pytest.mark.asyncio
async def test_anthropic_system_and_text(fetcher):
    messages = await convert_anthropic_messages(
        [{"type": "text", "text": "You are terse."}],
        [
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": [{"type": "text", "text": "Hello"}]},
        ],
        fetcher,
    )
    assert [(m.role, m.content) for m in messages] == [
        ("system", "You are terse."),
        ("user", "Hi"),
        ("assistant", "Hello"),
    ]


@pytest.mark.asyncio
async def test_anthropic_tool_use_and_results_ordering(fetcher):
    messages = await convert_anthropic_messages(
        None,
        [
            {"role": "user", "content": "Weather in Paris and Rome?"},
            {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": "Checking."},
                    {"type": "tool_use", "id": "toolu_1", "name": "get_weather", "input": {"city": "Paris"}},
                    {"type": "tool_use", "id": "toolu_2", "name": "get_weather", "input": {"city": "Rome"}},
                ],
            },
            {
                "role": "user",
                "content": [
                    {"type": "tool_result", "tool_use_id": "toolu_1", "content": "sunny"},
                    {"type": "tool_result", "tool_use_id": "toolu_2", "content": [{"type": "text", "text": "rain"}]},
                ],
            },
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "Thanks"},
                    {"type": "tool_result", "tool_use_id": "toolu_3", "content": {"ok": True}},
                ],
            },
        ],
        fetcher,
    )

    assert [m.role for m in messages] == ["user", "assistant", "tool", "tool", "user", "tool"]
    assistant = messages[1]
    assert assistant.content == "Checking."
    assert [call["id"] for call in assistant.tool_calls] == ["toolu_1", "toolu_2"]
    assert assistant.tool_calls[1]["function"]["arguments"] == {"city": "Rome"}

    assert (messages[2].tool_call_id, messages[2].content) == ("toolu_1", "sunny")
    assert (messages[3].tool_call_id, messages[3].content) == ("toolu_2", "rain")
    assert messages[4].content == "Thanks"
    assert messages[5].content == '{"ok": true}'


@pytest.mark.asyncio
async def test_anthropic_images(fetcher):
    messages = await convert_anthropic_messages(
        None,
        [
            {
                "role": "user",
                "content": [
                    {"type": "image", "source": {"type": "base64", "media_type": "image/png", "data": "QUJD"}},
                    {"type": "image", "source": {"type": "url", "url": "https://img.test/cat.png"}},
                    {"type": "image", "source": {"type": "url", "url": "https://img.test/gone.png"}},
                    {"type": "image", "source": {"type": "url", "url": "http://[::1/a.png"}},
                    {"type": "image", "source": {"type": "url", "url": 7}},
                    {"type": "text", "text": "Compare"},
                ],
            }
        ],
        fetcher,
    )
    assert messages[0].images == ["QUJD", "iVBORw=="]
    assert messages[0].content == "Compare"


@pytest.mark.asyncio
async def test_anthropic_rejects_system_role_in_messages(fetcher):
    with pytest.raises(InvalidRequestError):
        await convert_anthropic_messages(None, [{"role": "system", "content": "x"}], fetcher)
