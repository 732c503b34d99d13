"""
NDJSON stream decoding

Ollama streams one JSON object per line. Network chunks do not respect line
boundaries, so bytes are buffered until a full line is available.
"""

import json
from typing import Any


class NDJSONDecoder:
    """
    Incremental NDJSON decoder

    A line that does not parse is left at the front of the buffer and decoding
    waits for more bytes. Feeding a payload in arbitrary slices yields the same
    objects as feeding it whole.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> bytes:
        """Bytes received but not yet decoded"""
        return bytes(self._buffer)

    def feed(self, chunk: bytes) -> list[dict[str, Any]]:
        if chunk:
            self._buffer.extend(chunk)

        events: list[dict[str, Any]] = []
        while True:
            newline = self._buffer.find(b"\n")
            if newline < 0:
                break

            line = bytes(self._buffer[:newline]).strip()
            if not line:
                del self._buffer[: newline + 1]
                continue

            try:
                obj = json.loads(line)
            except ValueError:
                # requeued: the line stays buffered until more bytes arrive
                break

            del self._buffer[: newline + 1]
            if isinstance(obj, dict):
                events.append(obj)
        return events

    def flush(self) -> list[dict[str, Any]]:
        """Decode whatever is left once the stream has ended"""
        events = self.feed(b"\n") if self._buffer.strip() else []
        self._buffer.clear()
        return events
