"""
Image input handling

Ollama takes images as bare base64 strings. Callers send data URIs, remote URLs
or raw base64; remote images are downloaded here. A failed download never fails
the request: the image is dropped and a warning is logged.
"""

import base64
import logging
from dataclasses import dataclass
from typing import Optional, Union

import httpx

from ollama_gateway.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchedImage:
    """Downloaded image, base64 encoded"""

    data: str
    content_type: Optional[str] = None


@dataclass(frozen=True)
class ImageFetchFailed:
    """Download failed; the image is dropped from the request"""

    url: str
    reason: str


ImageFetchResult = Union[FetchedImage, ImageFetchFailed]


class ImageFetcher:
    """
    Downloads remote images with a short timeout and a size ceiling
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_bytes: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.timeout = timeout if timeout is not None else settings.IMAGE_FETCH_TIMEOUT
        self.max_bytes = max_bytes if max_bytes is not None else settings.IMAGE_FETCH_MAX_BYTES
        self._transport = transport

    async def fetch(self, url: str) -> ImageFetchResult:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                async with client.stream("GET", url) as response:
                    if response.status_code >= 400:
                        return ImageFetchFailed(url, f"HTTP {response.status_code}")

                    declared = response.headers.get("content-length")
                    if declared and declared.isdigit() and int(declared) > self.max_bytes:
                        return ImageFetchFailed(url, f"image larger than {self.max_bytes} bytes")

                    body = bytearray()
                    async for chunk in response.aiter_bytes():
                        body.extend(chunk)
                        if len(body) > self.max_bytes:
                            return ImageFetchFailed(url, f"image larger than {self.max_bytes} bytes")

                    return FetchedImage(
                        data=base64.b64encode(bytes(body)).decode("ascii"),
                        content_type=response.headers.get("content-type"),
                    )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return ImageFetchFailed(url, str(e) or type(e).__name__)

    async def resolve(self, source: str) -> Optional[str]:
        """
        Turn a caller image reference into Ollama's base64 form

        Returns:
            Optional[str]: base64 payload, or None when the image was dropped
        """
        if not source:
            return None
        if source.startswith("data:"):
            _, _, payload = source.partition(",")
            return payload or None
        if source.startswith(("http://", "https://")):
            result = await self.fetch(source)
            if isinstance(result, ImageFetchFailed):
                logger.warning("Failed to fetch image %s: %s", result.url, result.reason)
                return None
            return result.data
        return source
