"""
Reasoning directive resolution

Callers ask for reasoning in several ways: raw `think`, OpenAI
`reasoning_effort`, OpenRouter style `reasoning: {enabled | effort | exclude}`
and Anthropic `thinking`. All of them collapse into Ollama's single `think`
field, which is always one of True, False, "low", "medium" or "high".
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ollama_gateway.common.errors import InvalidRequestError
from ollama_gateway.domain.request import THINK_LEVELS, ThinkValue


@dataclass(frozen=True)
class ReasoningDirective:
    """Resolved reasoning preference for one request"""

    think: Optional[ThinkValue] = None
    # False when the caller asked for reasoning to be hidden from the response
    include_reasoning: bool = True


def map_think_value(value: Any) -> Optional[ThinkValue]:
    """
    Map any caller reasoning value onto the canonical set

    - booleans pass through
    - "low" / "medium" / "high" pass through (case-insensitive)
    - "minimal" maps to False, any other non-blank string to True
    - {"type": "enabled"} / {"type": "disabled"} (Anthropic thinking)
    - None and blank strings mean "not specified"
    - anything else by truthiness
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if not normalized:
            return None
        if normalized in THINK_LEVELS:
            return normalized
        if normalized == "minimal":
            return False
        return True
    if isinstance(value, Mapping):
        thinking_type = value.get("type")
        if thinking_type == "enabled":
            return True
        if thinking_type == "disabled":
            return False
    return bool(value)


def resolve_reasoning(
    override_think: Any = None,
    request_think: Any = None,
    reasoning_effort: Any = None,
    reasoning: Any = None,
) -> ReasoningDirective:
    """
    Resolve the reasoning directive by precedence

    override `think` > request `think` > `reasoning_effort` > `reasoning.effort`
    / `reasoning.enabled`. The first candidate that maps to a value wins.

    Raises:
        InvalidRequestError: `reasoning.enabled` and `reasoning.effort` were both given
    """
    reasoning_obj: Mapping[str, Any] = reasoning if isinstance(reasoning, Mapping) else {}

    if reasoning_obj.get("enabled") is not None and reasoning_obj.get("effort") is not None:
        raise InvalidRequestError(
            message="Only one of 'reasoning.enabled' and 'reasoning.effort' may be specified",
            code="conflicting_reasoning",
            param="reasoning",
        )

    include_reasoning = not bool(reasoning_obj.get("exclude"))

    candidates = (
        override_think,
        request_think,
        reasoning_effort,
        reasoning_obj.get("effort"),
        reasoning_obj.get("enabled"),
    )
    for candidate in candidates:
        think = map_think_value(candidate)
        if think is not None:
            return ReasoningDirective(think=think, include_reasoning=include_reasoning)
    return ReasoningDirective(think=None, include_reasoning=include_reasoning)
