"""
Tool definition and tool call mapping

Ollama uses the OpenAI function-tool schema for definitions but expects call
arguments as JSON objects, while OpenAI clients send and expect strings.
"""

from typing import Any, Optional

from ollama_gateway.common.utils import (
    dump_json_arguments,
    generate_tool_call_id,
    generate_tool_use_id,
    parse_json_object,
)


def to_backend_tool_call(call: Any) -> Optional[dict[str, Any]]:
    """Normalize a caller tool call (history message) for /api/chat"""
    if not isinstance(call, dict):
        return None
    function = call.get("function") if isinstance(call.get("function"), dict) else {}
    arguments = parse_json_object(function.get("arguments"))
    if arguments is None:
        arguments = {}
    return {
        "id": call.get("id") or generate_tool_call_id(),
        "type": "function",
        "function": {
            "name": function.get("name") or "tool",
            "arguments": arguments,
        },
    }


def to_openai_tool_call(call: dict[str, Any], index: Optional[int] = None) -> dict[str, Any]:
    """
    Backend tool call in OpenAI chat-completions form, arguments as a string

    `index` is set for streamed deltas only.
    """
    function = call.get("function") if isinstance(call.get("function"), dict) else {}
    converted: dict[str, Any] = {} if index is None else {"index": index}
    converted["id"] = call.get("id") or generate_tool_call_id()
    converted["type"] = "function"
    converted["function"] = {
        "name": function.get("name") or "function",
        "arguments": dump_json_arguments(function.get("arguments")),
    }
    return converted


def to_anthropic_tool_use(call: dict[str, Any], index: int) -> dict[str, Any]:
    """Backend tool call as an Anthropic tool_use content block"""
    function = call.get("function") if isinstance(call.get("function"), dict) else {}
    arguments = parse_json_object(function.get("arguments"))
    if not isinstance(arguments, dict):
        arguments = {} if arguments in (None, "") else {"value": arguments}
    return {
        "type": "tool_use",
        "id": call.get("id") or generate_tool_use_id(index),
        "name": function.get("name") or "function",
        "input": arguments,
    }


def anthropic_tools_to_backend(tools: Any) -> Optional[list[dict[str, Any]]]:
    """{name, description, input_schema} -> {type: function, function: {...}}"""
    if not isinstance(tools, list):
        return None
    converted = []
    for tool in tools:
        if not isinstance(tool, dict):
            continue
        converted.append(
            {
                "type": "function",
                "function": {
                    "name": tool.get("name"),
                    "description": tool.get("description"),
                    "parameters": tool.get("input_schema") or tool.get("parameters") or {},
                },
            }
        )
    return converted


def anthropic_tool_choice_to_backend(tool_choice: Any) -> Any:
    """
    Map Anthropic tool_choice

    "auto" and "any" become "auto", "none" stays, {"type": "tool", "name": n}
    names a function. Both the bare string and the {"type": ...} object forms
    are accepted. Anything else maps to None.
    """
    if not tool_choice:
        return None
    if isinstance(tool_choice, dict):
        choice_type = tool_choice.get("type")
        if choice_type == "tool" and tool_choice.get("name"):
            return {"type": "function", "function": {"name": tool_choice["name"]}}
        tool_choice = choice_type
    if tool_choice in ("auto", "any"):
        return "auto"
    if tool_choice == "none":
        return "none"
    return None
