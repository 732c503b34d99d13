"""
Sampling option merge and timeout / keep-alive resolution
"""

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from ollama_gateway.common.sanitizer import OptionSanitizer

# Timeout keys, in scan order. Keys ending in ms are milliseconds, the rest seconds.
TIMEOUT_KEYS = ("timeout_ms", "timeoutMs", "timeout", "request_timeout", "requestTimeout")
MILLISECOND_TIMEOUT_KEYS = frozenset({"timeout_ms", "timeoutMs"})
KEEP_ALIVE_KEYS = ("keep_alive", "keepAlive")

# Model override keys that steer the gateway rather than the sampler
OVERRIDE_CONTROL_KEYS = frozenset({"think", *TIMEOUT_KEYS, *KEEP_ALIVE_KEYS})

# extra_body keys that are not sampling options
RESERVED_EXTRA_BODY_KEYS = frozenset(
    {
        "think",
        "reasoning",
        "reasoning_effort",
        "tool_choice",
        "truncate",
        "ollama_options",
        "options",
        *TIMEOUT_KEYS,
        *KEEP_ALIVE_KEYS,
    }
)


@dataclass(frozen=True)
class OptionSource:
    """One named option bag; later sources win on key collision"""

    name: str
    values: Any


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def override_options(overrides: Any) -> dict[str, Any]:
    """Sampling options carried by a model override map"""
    return {k: v for k, v in _as_mapping(overrides).items() if k not in OVERRIDE_CONTROL_KEYS}


def passthrough_options(extra_body: Any) -> dict[str, Any]:
    """
    Options passed through extra_body

    `ollama_options`, then `options`, then every non-reserved top-level key.
    """
    extra = _as_mapping(extra_body)
    bag: dict[str, Any] = {}
    bag.update(_as_mapping(extra.get("ollama_options")))
    bag.update(_as_mapping(extra.get("options")))
    bag.update({k: v for k, v in extra.items() if k not in RESERVED_EXTRA_BODY_KEYS})
    return bag


def merge_options(
    sources: Iterable[OptionSource],
    sanitizer: OptionSanitizer,
    model: Optional[str] = None,
    route: Optional[str] = None,
) -> dict[str, Any]:
    """Sanitize each source on its own and merge them by simple override"""
    merged: dict[str, Any] = {}
    for source in sources:
        merged.update(
            sanitizer.sanitize(source.values, source=source.name, model=model, route=route)
        )
    return merged


def apply_named_fields(
    options: dict[str, Any],
    body: Mapping[str, Any],
    field_map: Sequence[tuple[str, str]],
) -> dict[str, Any]:
    """
    Copy top-level request fields into the option map

    Args:
        options: Merged option map, updated in place
        body: Caller request body
        field_map: (request field, option key) pairs, applied in order

    Returns:
        dict: The updated option map
    """
    for field_name, option_key in field_map:
        value = body.get(field_name)
        if value is None:
            continue
        if option_key == "stop" and isinstance(value, str):
            value = [value]
        options[option_key] = value
    return options


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        numeric = float(value)
    elif isinstance(value, str):
        try:
            numeric = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return numeric if math.isfinite(numeric) else None


def normalize_timeout(value: Any, milliseconds: bool = False) -> Optional[float]:
    """
    Normalize a timeout candidate to seconds

    Returns:
        Optional[float]: None when not a finite number, 0.0 (no timeout) for
        non-positive values, otherwise seconds
    """
    numeric = _to_number(value)
    if numeric is None:
        return None
    if numeric <= 0:
        return 0.0
    return numeric / 1000.0 if milliseconds else numeric


def resolve_timeout(
    sources: Iterable[Any],
    global_default: Optional[float] = None,
    fallback: Optional[float] = None,
) -> Optional[float]:
    """
    First finite timeout among the sources, then the global default, then fallback

    Args:
        sources: Mappings scanned in order (request root, metadata, extra_body, model override)
        global_default: Configured global timeout in seconds
        fallback: Value used when nothing matched (None means no override)
    """
    for source in sources:
        mapping = _as_mapping(source)
        for key in TIMEOUT_KEYS:
            timeout = normalize_timeout(mapping.get(key), key in MILLISECOND_TIMEOUT_KEYS)
            if timeout is not None:
                return timeout

    timeout = normalize_timeout(global_default)
    if timeout is not None:
        return timeout
    return fallback


def resolve_keep_alive(
    sources: Iterable[Any],
    default: Optional[str] = None,
) -> Optional[Union[str, int, float]]:
    """
    First usable keep-alive among the sources

    Strings are kept verbatim (e.g. "5m") unless blank; finite numbers are kept as given.
    """
    for source in sources:
        mapping = _as_mapping(source)
        for key in KEEP_ALIVE_KEYS:
            value = mapping.get(key)
            if isinstance(value, str):
                if value.strip():
                    return value
                continue
            if _to_number(value) is not None:
                return value
    return default
