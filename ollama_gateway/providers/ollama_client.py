"""
Ollama Client

Invokes the Ollama native API: /api/chat (buffered or NDJSON streamed),
/api/embed and /api/tags.

Timeouts are enforced here only. A buffered call gets one absolute deadline; a
streamed call gets the deadline until response headers arrive, after which a
slow but live generation is never cut off.
"""

import json
import logging
from typing import Any, AsyncGenerator, Optional

import anyio
import httpx

from ollama_gateway.config import get_settings

logger = logging.getLogger(__name__)


class BackendHTTPError(Exception):
    """
    Ollama answered with an error status

    Attributes:
        status_code: HTTP status returned by Ollama
        body: Decoded error body (JSON when parseable, else text)
    """

    def __init__(self, status_code: int, body: Any = None):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Ollama returned HTTP {status_code}: {self.message}")

    @property
    def message(self) -> str:
        """Best-effort human readable message from the error body"""
        body = self.body
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict):
                return str(error.get("message") or error)
            if error:
                return str(error)
            if body.get("message"):
                return str(body["message"])
            return json.dumps(body, ensure_ascii=False)
        if body is None:
            return ""
        return str(body)


def decode_error_body(raw: bytes) -> Any:
    """JSON-decode an error body, falling back to raw text"""
    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


def _deadline(timeout: Optional[float]) -> Optional[float]:
    """None or 0 means no deadline"""
    if not timeout or timeout <= 0:
        return None
    return timeout


class OllamaClient:
    """
    Ollama API client

    A new httpx.AsyncClient is opened per call, the connection lives exactly as
    long as the request (or stream) it serves.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.OLLAMA_URL).rstrip("/")
        self.tags_timeout = settings.MODEL_SYNC_TIMEOUT
        self._transport = transport

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            transport=self._transport,
            timeout=httpx.Timeout(timeout),
        )

    async def _post_json(self, path: str, payload: dict[str, Any], timeout: Optional[float]) -> Any:
        with anyio.fail_after(_deadline(timeout)):
            async with self._client() as client:
                response = await client.post(path, json=payload)

        if response.status_code >= 400:
            raise BackendHTTPError(response.status_code, decode_error_body(response.content))
        return response.json()

    async def chat(self, payload: dict[str, Any], timeout: Optional[float] = None) -> dict[str, Any]:
        """
        Buffered /api/chat call

        Args:
            payload: Ollama chat body (stream must be false)
            timeout: Absolute deadline in seconds; None or 0 disables it

        Returns:
            dict: Final Ollama response object

        Raises:
            BackendHTTPError: Ollama returned an error status
            TimeoutError: The deadline passed
            httpx.HTTPError: Transport failure
        """
        logger.debug(
            "Ollama chat request: url=%s/api/chat body=%s",
            self.base_url,
            json.dumps(payload, ensure_ascii=False),
        )
        return await self._post_json("/api/chat", payload, timeout)

    async def stream_chat(
        self,
        payload: dict[str, Any],
        timeout: Optional[float] = None,
    ) -> AsyncGenerator[bytes, None]:
        """
        Streamed /api/chat call

        Yields raw NDJSON bytes as they arrive. An error status is detected
        before the first yield; its body is drained and decoded so the real
        Ollama message reaches the error mapper.

        Raises:
            BackendHTTPError: Ollama returned an error status
            TimeoutError: No response headers before the deadline
            httpx.HTTPError: Transport failure
        """
        logger.debug(
            "Ollama chat stream request: url=%s/api/chat body=%s",
            self.base_url,
            json.dumps(payload, ensure_ascii=False),
        )
        async with self._client() as client:
            request = client.build_request("POST", "/api/chat", json=payload)
            with anyio.fail_after(_deadline(timeout)):
                response = await client.send(request, stream=True)

            try:
                if response.status_code >= 400:
                    raw = await response.aread()
                    raise BackendHTTPError(response.status_code, decode_error_body(raw))

                async for chunk in response.aiter_bytes():
                    yield chunk
            finally:
                await response.aclose()

    async def embed(self, payload: dict[str, Any], timeout: Optional[float] = None) -> dict[str, Any]:
        """/api/embed call, same error contract as chat()"""
        logger.debug("Ollama embed request: model=%s", payload.get("model"))
        return await self._post_json("/api/embed", payload, timeout)

    async def list_models(self) -> list[dict[str, Any]]:
        """
        Installed models from /api/tags

        Returns:
            list[dict]: Entries with at least "name" and usually "size"
        """
        async with self._client(self.tags_timeout) as client:
            response = await client.get("/api/tags")
        if response.status_code >= 400:
            raise BackendHTTPError(response.status_code, decode_error_body(response.content))
        models = response.json().get("models")
        return models if isinstance(models, list) else []
