"""
NDJSON decoder tests
"""

import json

import pytest

from ollama_gateway.protocol.ndjson import NDJSONDecoder

EVENTS = [
    {"message": {"role": "assistant", "content": "Hel"}, "done": False},
    {"message": {"role": "assistant", "content": "lo, wörld"}, "done": False},
    {"message": {"role": "assistant", "content": ""}, "done": True, "eval_count": 3},
]
PAYLOAD = b"".join(json.dumps(e, ensure_ascii=False).encode("utf-8") + b"\n" for e in EVENTS)


def _decode_in_slices(payload: bytes, size: int) -> list[dict]:
    decoder = NDJSONDecoder()
    events = []
    for start in range(0, len(payload), size):
        events.extend(decoder.feed(payload[start:start + size]))
    events.extend(decoder.flush())
    return events


def test_whole_payload():
    assert NDJSONDecoder().feed(PAYLOAD) == EVENTS


@pytest.mark.parametrize("size", [1, 2, 3, 7, 16, 64])
def test_any_split_yields_same_events(size):
    assert _decode_in_slices(PAYLOAD, size) == EVENTS


def test_every_single_cut_point():
    for cut in range(1, len(PAYLOAD)):
        decoder = NDJSONDecoder()
        events = decoder.feed(PAYLOAD[:cut]) + decoder.feed(PAYLOAD[cut:])
        assert events == EVENTS


def test_incomplete_line_stays_buffered():
    decoder = NDJSONDecoder()
    assert decoder.feed(b'{"done": fal') == []
    assert decoder.pending == b'{"done": fal'
    assert decoder.feed(b'se}\n') == [{"done": False}]
    assert decoder.pending == b""


def test_blank_lines_skipped():
    assert NDJSONDecoder().feed(b'\n\n{"a": 1}\r\n\n') == [{"a": 1}]


def test_flush_decodes_unterminated_last_line():
    decoder = NDJSONDecoder()
    assert decoder.feed(b'{"a": 1}\n{"b": 2}') == [{"a": 1}]
    assert decoder.flush() == [{"b": 2}]
    assert decoder.pending == b""
