"""
Configuration Management Module

Configures application parameters via environment variables or .env file.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application Configuration Class

    All configuration items can be overridden by environment variables, with names matching fields (uppercase).
    """

    # Application Config
    APP_NAME: str = "Ollama Gateway"
    DEBUG: bool = False

    # Database Config
    DATABASE_URL: str = "sqlite+aiosqlite:///./ollama_gateway.db"

    # Backend Config
    # Base URL of the Ollama server
    OLLAMA_URL: str = "http://localhost:11434"
    # Global request timeout (seconds). Consulted after request and model level
    # candidates; 0 or a negative value disables the timeout.
    REQUEST_TIMEOUT: Optional[float] = None
    # Fallback timeout (seconds) for OpenAI-dialect requests when nothing else is set
    DEFAULT_REQUEST_TIMEOUT: float = 120.0
    # Default keep_alive sent to Ollama when the caller does not provide one, e.g. "5m"
    DEFAULT_KEEP_ALIVE: Optional[str] = None
    # Timeout (seconds) for the /api/tags model listing
    MODEL_SYNC_TIMEOUT: float = 5.0

    # Option Sanitizer Config
    # "passthrough" keeps unknown sampling options (with a warning), "strip" drops them
    OPTIONS_POLICY: Literal["passthrough", "strip"] = "passthrough"

    # Image Fetch Config
    IMAGE_FETCH_TIMEOUT: float = 10.0
    IMAGE_FETCH_MAX_BYTES: int = 10 * 1024 * 1024

    # API Key Config
    # Generated API Key prefix
    API_KEY_PREFIX: str = "sk-"
    # API Key length (excluding prefix)
    API_KEY_LENGTH: int = 48

    # Admin Login Authentication
    # Enables login authentication when both ADMIN_USERNAME and ADMIN_PASSWORD are set; otherwise, login is not required.
    ADMIN_USERNAME: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None
    # Admin login token TTL (seconds)
    ADMIN_TOKEN_TTL_SECONDS: int = 86400

    # Usage Log Cleanup Config
    # Usage log retention days
    USAGE_LOG_RETENTION_DAYS: int = 30
    # Maximum number of usage log rows kept after cleanup
    USAGE_LOG_MAX_ENTRIES: int = 10000
    # Cleanup interval in hours
    USAGE_LOG_CLEANUP_INTERVAL_HOURS: int = 24

    # CORS Config
    # Comma-separated list of allowed origins, e.g. "http://localhost:3000,https://example.com"
    ALLOWED_ORIGINS: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get application configuration (Singleton)

    Returns:
        Settings: Application configuration instance
    """
    return Settings()
