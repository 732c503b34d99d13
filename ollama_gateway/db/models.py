"""
SQLAlchemy ORM Model Definitions

Tables:
- api_keys: Client API Keys and their model allow-lists
- model_configs: Ollama models exposed through the gateway
- usage_logs: One row per completed or failed request
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.sqlite import JSON as SQLiteJSON
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ollama_gateway.common.time import utc_now_naive


class Base(DeclarativeBase):
    """SQLAlchemy ORM Base Class"""
    pass


class ApiKey(Base):
    """
    API Keys Table

    API Key entity used for client authentication.
    """
    __tablename__ = "api_keys"

    # Primary Key ID
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Key Name, unique
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    # Key Value (randomly generated token), unique
    key_value: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    # Allowed model names, ["*"] for all
    allowed_models: Mapped[list] = mapped_column(SQLiteJSON, nullable=False, default=lambda: ["*"])
    # Successful authentications
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Is Active
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    # Creation Time
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, nullable=False
    )
    # Last Used Time
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class ModelConfig(Base):
    """
    Model Configs Table

    Maps a display name onto an Ollama model and stores per-model overrides.
    """
    __tablename__ = "model_configs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Ollama model name, e.g. "llama3:latest"
    backend_name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    # Caller-facing name
    display_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, index=True)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    # Sampling options plus think / timeout / keep_alive overrides (JSON)
    parameter_overrides: Mapped[Optional[dict]] = mapped_column(SQLiteJSON, nullable=True)
    # Model size in bytes as reported by /api/tags
    size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, onupdate=utc_now_naive, nullable=False
    )


class UsageLog(Base):
    """
    Usage Logs Table

    Records token usage and outcome of every proxied request.
    """
    __tablename__ = "usage_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    # Not a foreign key: logs outlive deleted keys
    api_key_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    api_key_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    model: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    tokens: Mapped[int] = mapped_column(Integer, default=0)
    prompt_tokens: Mapped[int] = mapped_column(Integer, default=0)
    completion_tokens: Mapped[int] = mapped_column(Integer, default=0)
    response_time_ms: Mapped[int] = mapped_column(Integer, default=0)
    # success / error
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    endpoint: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    ip: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_stream: Mapped[bool] = mapped_column(Boolean, default=False)
    error_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_usage_logs_timestamp", "timestamp"),
        Index("idx_usage_logs_api_key_id", "api_key_id"),
        Index("idx_usage_logs_model", "model"),
    )
