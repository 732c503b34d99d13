"""
Data Sanitization Module

Two concerns live here:

- Sampling option sanitization: caller supplied option bags are checked against
  the sampling parameters Ollama is known to understand. Unknown keys are kept
  or stripped depending on the configured policy, and each is warned about once.
- Credential masking, so logs and admin listings never show a full API Key.
"""

import logging
import time
from enum import Enum
from functools import lru_cache
from threading import Lock
from typing import Any, Callable, Mapping, Optional

from ollama_gateway.config import get_settings

logger = logging.getLogger(__name__)


class OptionPolicy(str, Enum):
    """What to do with sampling options that are not in the known set"""

    PASSTHROUGH = "passthrough"
    STRIP = "strip"


class SamplingOption(str, Enum):
    """Sampling parameters accepted in an Ollama options map"""

    # Core sampling controls
    TEMPERATURE = "temperature"
    TOP_P = "top_p"
    TOP_K = "top_k"
    TYPICAL_P = "typical_p"
    MIN_P = "min_p"
    TFS_Z = "tfs_z"
    CFG_SCALE = "cfg_scale"
    # Length / context controls
    NUM_PREDICT = "num_predict"
    NUM_CTX = "num_ctx"
    SEED = "seed"
    STOP = "stop"
    STOP_SEQUENCES = "stop_sequences"
    # Repetition / penalties
    REPEAT_PENALTY = "repeat_penalty"
    REPEAT_LAST_N = "repeat_last_n"
    PENALTY_DECAY = "penalty_decay"
    PRESENCE_PENALTY = "presence_penalty"
    FREQUENCY_PENALTY = "frequency_penalty"
    # Mirostat family
    MIROSTAT = "mirostat"
    MIROSTAT_ETA = "mirostat_eta"
    MIROSTAT_TAU = "mirostat_tau"


KNOWN_OPTION_KEYS = frozenset(option.value for option in SamplingOption)


class OptionSanitizer:
    """
    Option Sanitizer

    Owns its warn-once cache: a given (key, policy) pair produces at most one
    warning for the lifetime of the instance.
    """

    def __init__(
        self,
        policy: OptionPolicy = OptionPolicy.PASSTHROUGH,
        log: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.policy = OptionPolicy(policy)
        self._log = log or logger
        self._clock = clock
        self._warned: dict[tuple[str, OptionPolicy], float] = {}
        self._lock = Lock()

    @property
    def warned(self) -> dict[tuple[str, OptionPolicy], float]:
        """(key, policy) pairs already warned about, with the time of the warning"""
        return dict(self._warned)

    def sanitize(
        self,
        options: Any,
        source: Optional[str] = None,
        model: Optional[str] = None,
        route: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Return a sanitized copy of an option map

        Args:
            options: Caller supplied map; anything that is not a mapping yields {}
            source: Label of the option source, used in the warning
            model: Model name, used in the warning
            route: Request route, used in the warning

        Returns:
            dict: Copy holding known keys plus, under PASSTHROUGH, the unknown ones
        """
        if not isinstance(options, Mapping):
            return {}

        result: dict[str, Any] = {}
        for key, value in options.items():
            if key in KNOWN_OPTION_KEYS:
                result[key] = value
                continue
            self._warn_unknown(str(key), source, model, route)
            if self.policy == OptionPolicy.PASSTHROUGH:
                result[key] = value
        return result

    def _warn_unknown(
        self,
        key: str,
        source: Optional[str],
        model: Optional[str],
        route: Optional[str],
    ) -> None:
        cache_key = (key, self.policy)
        with self._lock:
            if cache_key in self._warned:
                return
            self._warned[cache_key] = self._clock()

        action = (
            "passing through unverified option"
            if self.policy == OptionPolicy.PASSTHROUGH
            else "dropping unsupported option"
        )
        parts = [f"{action} '{key}'"]
        if source:
            parts.append(f"from {source}")
        if model:
            parts.append(f"for model '{model}'")
        if route:
            parts.append(f"({route})")
        self._log.warning(" ".join(parts))


@lru_cache()
def get_option_sanitizer() -> OptionSanitizer:
    """Process-wide sanitizer built from OPTIONS_POLICY"""
    return OptionSanitizer(policy=OptionPolicy(get_settings().OPTIONS_POLICY))


def sanitize_authorization(value: Optional[str]) -> Optional[str]:
    """
    Sanitize authorization field value

    Examples:
        >>> sanitize_authorization("Bearer sk-1234567890abcdef")
        'Bearer sk-1***...***ef'
    """
    if not value:
        return value

    prefix = ""
    token = value
    if value.lower().startswith("bearer "):
        prefix = "Bearer "
        token = value[7:]

    if len(token) <= 8:
        return f"{prefix}***"

    return f"{prefix}{token[:4]}***...***{token[-2:]}"


_SENSITIVE_HEADERS = {"authorization", "x-api-key", "api-key", "x-admin-token"}


def sanitize_headers(headers: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Copy of a header map with credential headers masked"""
    if not headers:
        return {}
    return {
        name: sanitize_authorization(value) if name.lower() in _SENSITIVE_HEADERS else value
        for name, value in headers.items()
    }


def sanitize_api_key_display(key_value: str) -> str:
    """
    Mask an API Key for admin listings, keeping its prefix recognizable

    Example:
        >>> sanitize_api_key_display("sk-abcdefghijklmnop")
        'sk-abcd***...***op'
    """
    if not key_value:
        return key_value
    if len(key_value) <= 10:
        return "***"
    return f"{key_value[:7]}***...***{key_value[-2:]}"
