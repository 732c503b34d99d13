"""
Option merge, timeout and keep-alive tests
"""

import logging

import pytest

from ollama_gateway.common.sanitizer import OptionPolicy, OptionSanitizer
from ollama_gateway.protocol.parameters import (
    OptionSource,
    apply_named_fields,
    merge_options,
    normalize_timeout,
    override_options,
    passthrough_options,
    resolve_keep_alive,
    resolve_timeout,
)


@pytest.fixture
def strip_sanitizer():
    return OptionSanitizer(OptionPolicy.STRIP, log=logging.getLogger("test.parameters"))


def test_passthrough_options_order_and_reserved_keys():
    extra_body = {
        "ollama_options": {"num_ctx": 2048, "top_k": 10},
        "options": {"num_ctx": 4096},
        "top_k": 20,
        "think": True,
        "timeout_ms": 500,
        "keep_alive": "5m",
        "reasoning": {"effort": "low"},
    }
    assert passthrough_options(extra_body) == {"num_ctx": 4096, "top_k": 20}


def test_passthrough_options_non_mapping():
    assert passthrough_options(None) == {}
    assert passthrough_options(["num_ctx"]) == {}


def test_override_options_drop_control_keys():
    overrides = {"temperature": 0.1, "think": "high", "timeout": 30, "keepAlive": "1h"}
    assert override_options(overrides) == {"temperature": 0.1}


def test_merge_options_later_source_wins(strip_sanitizer):
    merged = merge_options(
        [
            OptionSource("model override", {"temperature": 0.1, "num_ctx": 8192}),
            OptionSource("extra_body", {"temperature": 0.7, "num_gpu": 1}),
        ],
        strip_sanitizer,
        model="llama3",
        route="/v1/chat/completions",
    )
    assert merged == {"temperature": 0.7, "num_ctx": 8192}


def test_apply_named_fields():
    options = {"temperature": 0.1, "num_predict": 10}
    body = {"temperature": 0.5, "max_tokens": None, "stop": "END", "top_p": 0.9}
    field_map = (("temperature", "temperature"), ("max_tokens", "num_predict"), ("stop", "stop"), ("top_p", "top_p"))

    result = apply_named_fields(options, body, field_map)
    assert result is options
    assert options == {"temperature": 0.5, "num_predict": 10, "stop": ["END"], "top_p": 0.9}


@pytest.mark.parametrize(
    "value, milliseconds, expected",
    [
        (30, False, 30.0),
        ("45", False, 45.0),
        (1500, True, 1.5),
        (0, False, 0.0),
        (-5, True, 0.0),
        (None, False, None),
        (True, False, None),
        ("soon", False, None),
        (float("inf"), False, None),
        (float("nan"), True, None),
    ],
)
def test_normalize_timeout(value, milliseconds, expected):
    assert normalize_timeout(value, milliseconds) == expected


def test_resolve_timeout_scan_order():
    root = {"stream": True}
    metadata = {"timeoutMs": 2500}
    extra_body = {"timeout": 99}
    assert resolve_timeout([root, metadata, extra_body]) == 2.5


def test_resolve_timeout_key_order_within_source():
    assert resolve_timeout([{"timeout": 10, "timeout_ms": 3000}]) == 3.0


def test_resolve_timeout_skips_unusable_values():
    assert resolve_timeout([{"timeout": "abc"}, None, {"request_timeout": 7}]) == 7.0


def test_resolve_timeout_zero_disables():
    assert resolve_timeout([{"timeout": 0}], global_default=60, fallback=120) == 0.0


def test_resolve_timeout_global_then_fallback():
    assert resolve_timeout([{}], global_default=60, fallback=120) == 60.0
    assert resolve_timeout([{}], global_default=None, fallback=120) == 120
    assert resolve_timeout([{}]) is None


def test_resolve_keep_alive():
    assert resolve_keep_alive([{"keep_alive": "10m"}, {"keep_alive": "1h"}]) == "10m"
    assert resolve_keep_alive([{"keep_alive": "  "}, {"keepAlive": 300}]) == 300
    assert resolve_keep_alive([{"keep_alive": -1}]) == -1
    assert resolve_keep_alive([{}, None], default="5m") == "5m"
    assert resolve_keep_alive([{"keep_alive": True}]) is None
