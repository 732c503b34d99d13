"""
Error Definitions

Defines custom exception classes used in the application for unified error handling.

Every error renders in either caller dialect:

- OpenAI:    {"error": {"message", "type", "param", "code"}}
- Anthropic: {"type": "error", "error": {"type", "message", "param", "code"}}
"""

from enum import Enum
from typing import Any, Optional


class Dialect(str, Enum):
    """Caller-facing API dialect"""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class AppError(Exception):
    """
    Application Base Exception

    Base class for all custom exceptions, containing error message, type, and code.
    """

    def __init__(
        self,
        message: str,
        error_type: str = "server_error",
        code: str = "internal_error",
        param: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        status_code: int = 500,
    ):
        """
        Initialize exception

        Args:
            message: Error message
            error_type: Caller-visible error type (taxonomy)
            code: Error code
            param: Name of the offending request parameter, if any
            details: Extra error details (only rendered in debug mode)
            status_code: HTTP status code
        """
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.code = code
        self.param = param
        self.details = details or {}
        self.status_code = status_code

    def to_dict(
        self,
        dialect: Dialect = Dialect.OPENAI,
        include_details: bool = False,
    ) -> dict[str, Any]:
        """
        Convert to dictionary format (for API response)

        Args:
            dialect: Envelope shape to produce
            include_details: Whether to include details field

        Returns:
            dict: Error information dictionary
        """
        error: dict[str, Any] = {
            "type": self.error_type,
            "message": self.message,
            "param": self.param,
            "code": self.code,
        }
        if include_details and self.details:
            error["details"] = self.details
        if dialect == Dialect.ANTHROPIC:
            return {"type": "error", "error": error}
        return {"error": error}


class AuthenticationError(AppError):
    """
    Authentication Error

    Raised when API Key is missing, invalid or disabled.
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        code: str = "invalid_api_key",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type="authentication_error",
            code=code,
            details=details,
            status_code=401,
        )


class PermissionDeniedError(AppError):
    """
    Permission Error

    Raised when an API Key is not allowed to use the requested model.
    """

    def __init__(
        self,
        message: str = "Permission denied",
        code: str = "forbidden",
        param: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type="permission_error",
            code=code,
            param=param,
            details=details,
            status_code=403,
        )


class InvalidRequestError(AppError):
    """
    Invalid Request Error

    Raised when request parameters do not meet requirements.
    """

    def __init__(
        self,
        message: str = "Invalid request",
        code: str = "invalid_request",
        param: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        status_code: int = 400,
    ):
        super().__init__(
            message=message,
            error_type="invalid_request_error",
            code=code,
            param=param,
            details=details,
            status_code=status_code,
        )


class NotFoundError(AppError):
    """
    Resource Not Found Error

    Raised when requested resource (e.g., model record, api key) does not exist.
    """

    def __init__(
        self,
        message: str = "Resource not found",
        code: str = "not_found",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type="invalid_request_error",
            code=code,
            details=details,
            status_code=404,
        )


class ConflictError(AppError):
    """
    Resource Conflict Error

    Raised when resource already exists (e.g., duplicate name).
    """

    def __init__(
        self,
        message: str = "Resource conflict",
        code: str = "conflict",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type="invalid_request_error",
            code=code,
            details=details,
            status_code=409,
        )


class UpstreamError(AppError):
    """
    Upstream Service Error

    Raised by the error mapper once a backend failure has been classified.
    """

    def __init__(
        self,
        message: str = "Upstream service error",
        error_type: str = "server_error",
        code: str = "server_error",
        param: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        status_code: int = 500,
    ):
        super().__init__(
            message=message,
            error_type=error_type,
            code=code,
            param=param,
            details=details,
            status_code=status_code,
        )
