"""
Message conversion

Flattens OpenAI and Anthropic message arrays into Ollama chat messages: text
parts joined by newlines, images collected as base64, tool calls and tool
results kept as structured fields.
"""

import json
from typing import Any, Optional

from ollama_gateway.common.errors import InvalidRequestError
from ollama_gateway.domain.request import ChatMessage
from ollama_gateway.protocol.images import ImageFetcher
from ollama_gateway.protocol.tools import to_backend_tool_call

OPENAI_ROLES = {"system", "user", "assistant", "tool", "developer"}
ANTHROPIC_ROLES = {"user", "assistant"}


def _invalid(message: str) -> InvalidRequestError:
    return InvalidRequestError(message=message, code="invalid_messages", param="messages")


def _require_list(messages: Any) -> list:
    if not isinstance(messages, list):
        raise _invalid("'messages' must be an array")
    return messages


def _image_url_of(part: dict[str, Any]) -> Optional[str]:
    image_url = part.get("image_url")
    if isinstance(image_url, dict):
        image_url = image_url.get("url")
    return image_url if isinstance(image_url, str) else None


async def _openai_content(content: Any, fetcher: ImageFetcher) -> tuple[str, list[str]]:
    if content is None:
        return "", []
    if isinstance(content, str):
        return content, []
    if not isinstance(content, list):
        return str(content), []

    texts: list[str] = []
    images: list[str] = []
    for part in content:
        if isinstance(part, str):
            texts.append(part)
            continue
        if not isinstance(part, dict):
            continue
        part_type = part.get("type")
        if part_type == "image_url":
            url = _image_url_of(part)
            image = await fetcher.resolve(url) if url else None
            if image:
                images.append(image)
        elif isinstance(part.get("text"), str):
            texts.append(part["text"])
    return "\n".join(texts), images


async def convert_openai_messages(messages: Any, fetcher: ImageFetcher) -> list[ChatMessage]:
    """
    Convert OpenAI chat messages

    Raises:
        InvalidRequestError: messages is not an array, or an entry is malformed
    """
    converted: list[ChatMessage] = []
    for position, message in enumerate(_require_list(messages)):
        if not isinstance(message, dict):
            raise _invalid(f"messages[{position}] must be an object")
        role = message.get("role")
        if role not in OPENAI_ROLES:
            raise _invalid(f"messages[{position}] has unsupported role {role!r}")

        text, images = await _openai_content(message.get("content"), fetcher)
        chat_message = ChatMessage(
            role="system" if role == "developer" else role,
            content=text,
            images=images,
        )

        if role == "assistant" and isinstance(message.get("tool_calls"), list):
            chat_message.tool_calls = [
                call
                for call in (to_backend_tool_call(c) for c in message["tool_calls"])
                if call is not None
            ]
        if role == "tool":
            chat_message.tool_call_id = message.get("tool_call_id")
            chat_message.tool_name = message.get("name")

        converted.append(chat_message)
    return converted


def flatten_system_prompt(system: Any) -> Optional[str]:
    """Anthropic top-level system: a string or a list of text blocks"""
    if isinstance(system, str):
        return system
    if isinstance(system, list):
        parts = []
        for block in system:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text") or "")
        return "\n".join(parts)
    return None


def _tool_result_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(
            item.get("text") or "" if isinstance(item, dict) else str(item)
            for item in content
        )
    return json.dumps(content or {}, ensure_ascii=False)


async def _anthropic_image(block: dict[str, Any], fetcher: ImageFetcher) -> Optional[str]:
    source = block.get("source") if isinstance(block.get("source"), dict) else block
    url, data = source.get("url"), source.get("data")
    if source.get("type") == "url" and isinstance(url, str) and url:
        return await fetcher.resolve(url)
    return data if isinstance(data, str) and data else None


async def convert_anthropic_messages(
    system: Any,
    messages: Any,
    fetcher: ImageFetcher,
) -> list[ChatMessage]:
    """
    Convert an Anthropic system prompt plus messages

    tool_result blocks become separate tool messages placed after the message
    that carried them. A user message left with nothing but tool results is
    omitted.

    Raises:
        InvalidRequestError: messages is not an array, or an entry is malformed
    """
    converted: list[ChatMessage] = []

    system_text = flatten_system_prompt(system)
    if system_text:
        converted.append(ChatMessage(role="system", content=system_text))

    for position, message in enumerate(_require_list(messages)):
        if not isinstance(message, dict):
            raise _invalid(f"messages[{position}] must be an object")
        role = message.get("role")
        if role not in ANTHROPIC_ROLES:
            raise _invalid(f"messages[{position}] has unsupported role {role!r}")

        content = message.get("content")
        blocks = content if isinstance(content, list) else [{"type": "text", "text": content or ""}]

        texts: list[str] = []
        images: list[str] = []
        tool_calls: list[dict[str, Any]] = []
        tool_results: list[ChatMessage] = []

        for block in blocks:
            if isinstance(block, str):
                texts.append(block)
                continue
            if not isinstance(block, dict):
                continue
            block_type = block.get("type")
            if block_type == "text":
                texts.append(block.get("text") or "")
            elif block_type in ("image", "input_image"):
                image = await _anthropic_image(block, fetcher)
                if image:
                    images.append(image)
            elif block_type == "tool_use":
                tool_calls.append(
                    to_backend_tool_call(
                        {
                            "id": block.get("id"),
                            "function": {
                                "name": block.get("name"),
                                "arguments": block.get("input") or {},
                            },
                        }
                    )
                )
            elif block_type == "tool_result":
                tool_results.append(
                    ChatMessage(
                        role="tool",
                        content=_tool_result_text(block.get("content")),
                        tool_call_id=block.get("tool_use_id") or block.get("id"),
                    )
                )

        base = ChatMessage(role=role, content="\n".join(texts), images=images, tool_calls=tool_calls)
        if not base.is_empty or role != "user":
            converted.append(base)
        converted.extend(tool_results)

    return converted
