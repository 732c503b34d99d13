"""
Model Config Repository SQLAlchemy Implementation
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ollama_gateway.db.models import ModelConfig as ModelConfigORM
from ollama_gateway.domain.model import ModelConfig, ModelConfigCreate, ModelConfigUpdate
from ollama_gateway.repositories.model_repo import ModelConfigRepository


class SQLAlchemyModelConfigRepository(ModelConfigRepository):
    """Model Config Repository SQLAlchemy Implementation"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_domain(self, entity: ModelConfigORM) -> ModelConfig:
        return ModelConfig(
            id=entity.id,
            backend_name=entity.backend_name,
            display_name=entity.display_name,
            enabled=entity.enabled,
            parameter_overrides=entity.parameter_overrides,
            size=entity.size,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    async def _get_entity(self, id: int) -> Optional[ModelConfigORM]:
        result = await self.session.execute(
            select(ModelConfigORM).where(ModelConfigORM.id == id)
        )
        return result.scalar_one_or_none()

    async def create(self, data: ModelConfigCreate, size: Optional[int] = None) -> ModelConfig:
        entity = ModelConfigORM(
            backend_name=data.backend_name,
            display_name=data.display_name or data.backend_name,
            enabled=data.enabled,
            parameter_overrides=data.parameter_overrides,
            size=size,
        )
        self.session.add(entity)
        await self.session.commit()
        await self.session.refresh(entity)
        return self._to_domain(entity)

    async def get_by_id(self, id: int) -> Optional[ModelConfig]:
        entity = await self._get_entity(id)
        return self._to_domain(entity) if entity else None

    async def get_by_backend_name(self, backend_name: str) -> Optional[ModelConfig]:
        result = await self.session.execute(
            select(ModelConfigORM).where(ModelConfigORM.backend_name == backend_name)
        )
        entity = result.scalar_one_or_none()
        return self._to_domain(entity) if entity else None

    async def get_by_display_name(self, display_name: str) -> Optional[ModelConfig]:
        # Display names are not unique; the oldest record wins
        result = await self.session.execute(
            select(ModelConfigORM)
            .where(ModelConfigORM.display_name == display_name)
            .order_by(ModelConfigORM.id)
            .limit(1)
        )
        entity = result.scalar_one_or_none()
        return self._to_domain(entity) if entity else None

    async def get_all(self, enabled: Optional[bool] = None) -> list[ModelConfig]:
        query = select(ModelConfigORM)
        if enabled is not None:
            query = query.where(ModelConfigORM.enabled == enabled)
        query = query.order_by(
            func.coalesce(ModelConfigORM.display_name, ModelConfigORM.backend_name)
        )
        entities = (await self.session.execute(query)).scalars().all()
        return [self._to_domain(e) for e in entities]

    async def update(self, id: int, data: ModelConfigUpdate) -> Optional[ModelConfig]:
        entity = await self._get_entity(id)
        if not entity:
            return None

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(entity, key, value)

        await self.session.commit()
        await self.session.refresh(entity)
        return self._to_domain(entity)

    async def delete(self, id: int) -> bool:
        entity = await self._get_entity(id)
        if not entity:
            return False
        await self.session.delete(entity)
        await self.session.commit()
        return True
