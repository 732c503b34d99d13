"""
Error Mapper

Classifies failures of a backend call into the caller-visible taxonomy. The
result is an AppError, rendered later in whichever dialect the caller used.

| Backend condition                  | status | type                      | code                |
|------------------------------------|--------|---------------------------|---------------------|
| 400 mentioning "model"/"not found" | 404    | invalid_request_error     | model_not_found     |
| 400 otherwise                      | 400    | invalid_request_error     | invalid_request     |
| 401                                | 401    | authentication_error      | invalid_api_key     |
| 403                                | 403    | permission_error          | forbidden           |
| 404 mentioning "model"             | 404    | invalid_request_error     | model_not_found     |
| 404 otherwise                      | 404    | invalid_request_error     | not_found           |
| 429                                | 429    | rate_limit_error          | rate_limit_exceeded |
| 5xx                                | 500    | server_error              | server_error        |
| connection refused / unknown host  | 503    | service_unavailable_error | service_unavailable |
| timeout                            | 504    | timeout_error             | timeout             |
| other status                       | 500    | server_error              | unknown_error       |
| anything else                      | 500    | server_error              | internal_error      |
"""

import socket
from typing import Optional

import httpx

from ollama_gateway.common.errors import AppError, UpstreamError
from ollama_gateway.providers.ollama_client import BackendHTTPError


def _mentions(text: str, *needles: str) -> bool:
    lowered = text.lower()
    return any(needle in lowered for needle in needles)


def map_status_error(exc: BackendHTTPError, model: Optional[str] = None) -> AppError:
    status = exc.status_code
    detail = exc.message
    details = {"upstream_status": status, "upstream_body": exc.body}

    def error(message, error_type, code, status_code, param=None):
        return UpstreamError(
            message=detail or message,
            error_type=error_type,
            code=code,
            param=param,
            details=details,
            status_code=status_code,
        )

    model_missing = f"Model '{model}' does not exist" if model else "Model does not exist"

    if status == 400:
        if _mentions(detail, "model", "not found"):
            return error(model_missing, "invalid_request_error", "model_not_found", 404, "model")
        return error("Invalid request", "invalid_request_error", "invalid_request", 400)
    if status == 401:
        return error("Invalid credentials provided to Ollama", "authentication_error", "invalid_api_key", 401)
    if status == 403:
        return error("Ollama denied the request", "permission_error", "forbidden", 403)
    if status == 404:
        if _mentions(detail, "model"):
            return error(model_missing, "invalid_request_error", "model_not_found", 404, "model")
        return error("Ollama endpoint not found", "invalid_request_error", "not_found", 404)
    if status == 429:
        return error("Rate limit exceeded", "rate_limit_error", "rate_limit_exceeded", 429)
    if 500 <= status < 600:
        return error("Ollama server error", "server_error", "server_error", 500)
    return error("Unknown error", "server_error", "unknown_error", 500)


def is_connection_failure(exc: BaseException) -> bool:
    return isinstance(exc, (httpx.ConnectError, ConnectionRefusedError, socket.gaierror))


def is_timeout(exc: BaseException) -> bool:
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return True
    return _mentions(str(exc), "timeout", "timed out")


def map_backend_error(exc: BaseException, model: Optional[str] = None) -> AppError:
    """
    Classify a failure raised while calling Ollama

    Args:
        exc: Exception from the invoker (or an already classified AppError)
        model: Requested model name, used in model_not_found messages

    Returns:
        AppError: Error carrying status, type and code
    """
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, BackendHTTPError):
        return map_status_error(exc, model)
    if is_connection_failure(exc):
        return UpstreamError(
            message="Cannot connect to Ollama server",
            error_type="service_unavailable_error",
            code="service_unavailable",
            status_code=503,
        )
    if is_timeout(exc):
        return UpstreamError(
            message="Request timeout - Ollama server took too long to respond",
            error_type="timeout_error",
            code="timeout",
            status_code=504,
        )
    return UpstreamError(
        message=str(exc) or "Internal server error",
        error_type="server_error",
        code="internal_error",
        status_code=500,
    )
