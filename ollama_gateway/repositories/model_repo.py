"""
Model Config Repository Interface
"""

from abc import ABC, abstractmethod
from typing import Optional

from ollama_gateway.domain.model import ModelConfig, ModelConfigCreate, ModelConfigUpdate


class ModelConfigRepository(ABC):
    """Model Config Repository Interface"""

    @abstractmethod
    async def create(self, data: ModelConfigCreate, size: Optional[int] = None) -> ModelConfig:
        pass

    @abstractmethod
    async def get_by_id(self, id: int) -> Optional[ModelConfig]:
        pass

    @abstractmethod
    async def get_by_backend_name(self, backend_name: str) -> Optional[ModelConfig]:
        pass

    @abstractmethod
    async def get_by_display_name(self, display_name: str) -> Optional[ModelConfig]:
        pass

    @abstractmethod
    async def get_all(self, enabled: Optional[bool] = None) -> list[ModelConfig]:
        """All model records ordered by display name"""
        pass

    @abstractmethod
    async def update(self, id: int, data: ModelConfigUpdate) -> Optional[ModelConfig]:
        pass

    @abstractmethod
    async def delete(self, id: int) -> bool:
        pass
