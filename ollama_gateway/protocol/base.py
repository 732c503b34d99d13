"""
Request Normalizer Base Class

Shared plumbing for turning a caller request into a NormalizedRequest.
Dialect specific subclasses supply message conversion and field mapping.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Sequence

from ollama_gateway.common.errors import Dialect
from ollama_gateway.common.sanitizer import OptionSanitizer, get_option_sanitizer
from ollama_gateway.config import Settings, get_settings
from ollama_gateway.domain.request import NormalizedRequest
from ollama_gateway.protocol.images import ImageFetcher
from ollama_gateway.protocol.parameters import (
    OptionSource,
    apply_named_fields,
    merge_options,
    override_options,
    passthrough_options,
    resolve_keep_alive,
    resolve_timeout,
)


def as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def wants_stream(body: Mapping[str, Any]) -> bool:
    stream = body.get("stream")
    return stream is True or stream == "true"


def first_present(*values: Any) -> Any:
    """First value that is not None"""
    for value in values:
        if value is not None:
            return value
    return None


class RequestNormalizer(ABC):
    """
    Request Normalizer

    Args (constructor):
        sanitizer: Option sanitizer, defaults to the process-wide instance
        fetcher: Image fetcher for remote image URLs
        settings: Application settings
    """

    dialect: Dialect
    route: str

    def __init__(
        self,
        sanitizer: Optional[OptionSanitizer] = None,
        fetcher: Optional[ImageFetcher] = None,
        settings: Optional[Settings] = None,
    ):
        self.sanitizer = sanitizer or get_option_sanitizer()
        self.fetcher = fetcher or ImageFetcher()
        self.settings = settings or get_settings()

    @abstractmethod
    async def normalize(
        self,
        body: Mapping[str, Any],
        backend_model: str,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> NormalizedRequest:
        """
        Convert a caller request body

        Args:
            body: Caller request body
            backend_model: Resolved Ollama model name
            overrides: Per-model parameter overrides

        Raises:
            InvalidRequestError: Malformed messages or conflicting reasoning directives
        """
        pass

    def build_options(
        self,
        body: Mapping[str, Any],
        backend_model: str,
        overrides: Mapping[str, Any],
        named_fields: Sequence[tuple[str, str]],
    ) -> dict[str, Any]:
        sources = (
            OptionSource("model override", override_options(overrides)),
            OptionSource("extra_body", passthrough_options(body.get("extra_body"))),
            OptionSource("request options", body.get("options")),
        )
        options = merge_options(sources, self.sanitizer, model=backend_model, route=self.route)
        return apply_named_fields(options, body, named_fields)

    def resolve_timeout(
        self,
        body: Mapping[str, Any],
        overrides: Mapping[str, Any],
        fallback: Optional[float],
    ) -> Optional[float]:
        return resolve_timeout(
            (body, body.get("metadata"), body.get("extra_body"), overrides),
            global_default=self.settings.REQUEST_TIMEOUT,
            fallback=fallback,
        )

    def resolve_keep_alive(self, body: Mapping[str, Any], overrides: Mapping[str, Any]):
        return resolve_keep_alive(
            (body, body.get("metadata"), body.get("extra_body"), overrides),
            default=self.settings.DEFAULT_KEEP_ALIVE,
        )
