"""
API Key Repository Interface

Defines the data access interface for API Keys.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from ollama_gateway.domain.api_key import ApiKeyCreate, ApiKeyModel, ApiKeyUpdate


class ApiKeyRepository(ABC):
    """API Key Repository Interface"""

    @abstractmethod
    async def create(self, data: ApiKeyCreate, key_value: str) -> ApiKeyModel:
        """
        Create API Key

        Args:
            data: Creation data
            key_value: Generated key value (token)

        Returns:
            ApiKeyModel: Created API Key model
        """
        pass

    @abstractmethod
    async def get_by_id(self, id: int) -> Optional[ApiKeyModel]:
        """Get API Key by ID"""
        pass

    @abstractmethod
    async def get_by_key_value(self, key_value: str) -> Optional[ApiKeyModel]:
        """Get API Key by Key Value (for authentication)"""
        pass

    @abstractmethod
    async def get_by_name(self, name: str) -> Optional[ApiKeyModel]:
        """Get API Key by name"""
        pass

    @abstractmethod
    async def get_all(
        self,
        is_active: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[ApiKeyModel], int]:
        """Get API Key list with total count"""
        pass

    @abstractmethod
    async def update(self, id: int, data: ApiKeyUpdate) -> Optional[ApiKeyModel]:
        """Update API Key"""
        pass

    @abstractmethod
    async def record_usage(self, id: int, used_at: datetime) -> None:
        """Increment the usage counter and set the last used time"""
        pass

    @abstractmethod
    async def count(self) -> int:
        pass

    @abstractmethod
    async def delete(self, id: int) -> bool:
        """Delete API Key"""
        pass
