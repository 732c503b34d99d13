"""
Log Service Module

Usage log queries, retention and the fire-and-forget usage recorder.
"""

import logging
from typing import Callable, Optional

import anyio
from sqlalchemy.ext.asyncio import AsyncSession

from ollama_gateway.domain.log import UsageLogCreate, UsageLogModel, UsageLogQuery, UsageStats
from ollama_gateway.repositories.log_repo import UsageLogRepository

logger = logging.getLogger(__name__)


class LogService:
    """
    Log Service

    Handles business logic related to usage logs.
    """

    def __init__(self, repo: UsageLogRepository):
        """
        Initialize Service

        Args:
            repo: Usage Log Repository
        """
        self.repo = repo

    async def create(self, data: UsageLogCreate) -> UsageLogModel:
        return await self.repo.create(data)

    async def query(self, query: UsageLogQuery) -> tuple[list[UsageLogModel], int]:
        """
        Query Log List

        Args:
            query: Query conditions

        Returns:
            tuple[list[UsageLogModel], int]: (Log list, Total count)
        """
        return await self.repo.query(query)

    async def get_stats(self) -> UsageStats:
        return await self.repo.get_stats()

    async def cleanup_old_logs(self, retention_days: int) -> int:
        """
        Clean up logs older than the retention period

        Args:
            retention_days: Days to keep; non-positive disables cleanup

        Returns:
            int: Number of deleted logs
        """
        if retention_days <= 0:
            return 0
        return await self.repo.cleanup_old_logs(retention_days)

    async def trim_to(self, max_entries: int) -> int:
        """Keep only the newest `max_entries` logs"""
        return await self.repo.trim_to(max_entries)


class UsageRecorder:
    """
    Writes usage records on a session of its own

    The write is shielded from cancellation so it survives a client
    disconnect, and failures are logged instead of raised.

    Args (constructor):
        session_factory: Callable returning an AsyncSession context manager
        repo_factory: Builds the repository for a session
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
        repo_factory: Optional[Callable[[AsyncSession], UsageLogRepository]] = None,
    ):
        if session_factory is None:
            from ollama_gateway.db.session import AsyncSessionLocal

            session_factory = AsyncSessionLocal
        if repo_factory is None:
            from ollama_gateway.repositories.sqlalchemy import SQLAlchemyUsageLogRepository

            repo_factory = SQLAlchemyUsageLogRepository
        self.session_factory = session_factory
        self.repo_factory = repo_factory

    async def record(self, data: UsageLogCreate) -> None:
        try:
            logger.debug("Usage log: %s", data.model_dump_json())
            with anyio.CancelScope(shield=True):
                async with self.session_factory() as session:
                    await self.repo_factory(session).create(data)
        except Exception:
            logger.exception(
                "Failed to write usage log (model=%s, status=%s)", data.model, data.status
            )
