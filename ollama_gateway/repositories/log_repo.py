"""
Usage Log Repository Interface
"""

from abc import ABC, abstractmethod

from ollama_gateway.domain.log import UsageLogCreate, UsageLogModel, UsageLogQuery, UsageStats


class UsageLogRepository(ABC):
    """Usage Log Repository Interface"""

    @abstractmethod
    async def create(self, data: UsageLogCreate) -> UsageLogModel:
        pass

    @abstractmethod
    async def query(self, query: UsageLogQuery) -> tuple[list[UsageLogModel], int]:
        """
        Query usage logs

        Returns:
            tuple[list[UsageLogModel], int]: (Page of logs, newest first; Total count)
        """
        pass

    @abstractmethod
    async def get_stats(self) -> UsageStats:
        pass

    @abstractmethod
    async def cleanup_old_logs(self, days_to_keep: int) -> int:
        """Delete logs older than the given number of days, return deleted count"""
        pass

    @abstractmethod
    async def trim_to(self, max_entries: int) -> int:
        """Keep only the newest max_entries logs, return deleted count"""
        pass
