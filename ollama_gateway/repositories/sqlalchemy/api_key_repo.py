"""
API Key Repository SQLAlchemy Implementation
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ollama_gateway.common.time import to_utc_naive
from ollama_gateway.db.models import ApiKey as ApiKeyORM
from ollama_gateway.domain.api_key import ApiKeyCreate, ApiKeyModel, ApiKeyUpdate
from ollama_gateway.repositories.api_key_repo import ApiKeyRepository


class SQLAlchemyApiKeyRepository(ApiKeyRepository):
    """
    API Key Repository SQLAlchemy Implementation
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize Repository

        Args:
            session: Async database session
        """
        self.session = session

    def _to_domain(self, entity: ApiKeyORM) -> ApiKeyModel:
        """Convert ORM entity to domain model"""
        return ApiKeyModel(
            id=entity.id,
            name=entity.name,
            key_value=entity.key_value,
            allowed_models=list(entity.allowed_models or ["*"]),
            usage_count=entity.usage_count or 0,
            is_active=entity.is_active,
            created_at=entity.created_at,
            last_used_at=entity.last_used_at,
        )

    async def _get_entity(self, id: int) -> Optional[ApiKeyORM]:
        result = await self.session.execute(select(ApiKeyORM).where(ApiKeyORM.id == id))
        return result.scalar_one_or_none()

    async def create(self, data: ApiKeyCreate, key_value: str) -> ApiKeyModel:
        entity = ApiKeyORM(
            name=data.name,
            key_value=key_value,
            allowed_models=list(data.allowed_models),
            is_active=True,
        )
        self.session.add(entity)
        await self.session.commit()
        await self.session.refresh(entity)
        return self._to_domain(entity)

    async def get_by_id(self, id: int) -> Optional[ApiKeyModel]:
        entity = await self._get_entity(id)
        return self._to_domain(entity) if entity else None

    async def get_by_key_value(self, key_value: str) -> Optional[ApiKeyModel]:
        result = await self.session.execute(
            select(ApiKeyORM).where(ApiKeyORM.key_value == key_value)
        )
        entity = result.scalar_one_or_none()
        return self._to_domain(entity) if entity else None

    async def get_by_name(self, name: str) -> Optional[ApiKeyModel]:
        result = await self.session.execute(select(ApiKeyORM).where(ApiKeyORM.name == name))
        entity = result.scalar_one_or_none()
        return self._to_domain(entity) if entity else None

    async def get_all(
        self,
        is_active: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[ApiKeyModel], int]:
        query = select(ApiKeyORM)
        count_query = select(func.count()).select_from(ApiKeyORM)

        if is_active is not None:
            query = query.where(ApiKeyORM.is_active == is_active)
            count_query = count_query.where(ApiKeyORM.is_active == is_active)

        total = (await self.session.execute(count_query)).scalar() or 0

        query = query.order_by(ApiKeyORM.id.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)
        entities = (await self.session.execute(query)).scalars().all()

        return [self._to_domain(e) for e in entities], total

    async def update(self, id: int, data: ApiKeyUpdate) -> Optional[ApiKeyModel]:
        entity = await self._get_entity(id)
        if not entity:
            return None

        for key, value in data.model_dump(exclude_unset=True).items():
            if key == "allowed_models":
                value = [name.strip() for name in value or [] if name and name.strip()] or ["*"]
            setattr(entity, key, value)

        await self.session.commit()
        await self.session.refresh(entity)
        return self._to_domain(entity)

    async def record_usage(self, id: int, used_at: datetime) -> None:
        # Single UPDATE so concurrent requests do not lose increments
        await self.session.execute(
            update(ApiKeyORM)
            .where(ApiKeyORM.id == id)
            .values(
                usage_count=ApiKeyORM.usage_count + 1,
                last_used_at=to_utc_naive(used_at),
            )
        )
        await self.session.commit()

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(ApiKeyORM))
        return result.scalar() or 0

    async def delete(self, id: int) -> bool:
        entity = await self._get_entity(id)
        if not entity:
            return False

        await self.session.delete(entity)
        await self.session.commit()
        return True
