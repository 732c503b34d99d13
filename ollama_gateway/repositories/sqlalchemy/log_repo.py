"""
Usage Log Repository SQLAlchemy Implementation
"""

from datetime import timedelta

from sqlalchemy import case, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ollama_gateway.common.time import to_utc_naive, utc_now
from ollama_gateway.db.models import UsageLog as UsageLogORM
from ollama_gateway.domain.log import UsageLogCreate, UsageLogModel, UsageLogQuery, UsageStats
from ollama_gateway.repositories.log_repo import UsageLogRepository


class SQLAlchemyUsageLogRepository(UsageLogRepository):
    """Usage Log Repository SQLAlchemy Implementation"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_domain(self, entity: UsageLogORM) -> UsageLogModel:
        return UsageLogModel.model_validate(entity)

    async def create(self, data: UsageLogCreate) -> UsageLogModel:
        values = data.model_dump()
        values["timestamp"] = to_utc_naive(data.timestamp)
        entity = UsageLogORM(**values)
        self.session.add(entity)
        await self.session.commit()
        await self.session.refresh(entity)
        return self._to_domain(entity)

    async def query(self, query: UsageLogQuery) -> tuple[list[UsageLogModel], int]:
        conditions = []
        if query.api_key_id is not None:
            conditions.append(UsageLogORM.api_key_id == query.api_key_id)
        if query.model:
            conditions.append(UsageLogORM.model == query.model)
        if query.status:
            conditions.append(UsageLogORM.status == query.status)
        if query.start_time:
            conditions.append(UsageLogORM.timestamp >= to_utc_naive(query.start_time))
        if query.end_time:
            conditions.append(UsageLogORM.timestamp <= to_utc_naive(query.end_time))

        count_stmt = select(func.count()).select_from(UsageLogORM).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = (
            select(UsageLogORM)
            .where(*conditions)
            .order_by(UsageLogORM.timestamp.desc(), UsageLogORM.id.desc())
            .offset((query.page - 1) * query.page_size)
            .limit(query.page_size)
        )
        entities = (await self.session.execute(stmt)).scalars().all()
        return [self._to_domain(e) for e in entities], total

    async def get_stats(self) -> UsageStats:
        stmt = select(
            func.count(UsageLogORM.id),
            func.coalesce(func.sum(case((UsageLogORM.status == "error", 1), else_=0)), 0),
            func.coalesce(func.sum(UsageLogORM.tokens), 0),
            func.coalesce(func.sum(UsageLogORM.prompt_tokens), 0),
            func.coalesce(func.sum(UsageLogORM.completion_tokens), 0),
        )
        row = (await self.session.execute(stmt)).one()
        return UsageStats(
            total_requests=row[0] or 0,
            error_requests=row[1] or 0,
            total_tokens=row[2] or 0,
            prompt_tokens=row[3] or 0,
            completion_tokens=row[4] or 0,
        )

    async def cleanup_old_logs(self, days_to_keep: int) -> int:
        cutoff_time = to_utc_naive(utc_now() - timedelta(days=days_to_keep))
        result = await self.session.execute(
            delete(UsageLogORM).where(UsageLogORM.timestamp < cutoff_time)
        )
        await self.session.commit()
        return result.rowcount or 0

    async def trim_to(self, max_entries: int) -> int:
        if max_entries <= 0:
            return 0
        # id of the oldest row that survives
        boundary = (
            await self.session.execute(
                select(UsageLogORM.id)
                .order_by(UsageLogORM.id.desc())
                .offset(max_entries - 1)
                .limit(1)
            )
        ).scalar_one_or_none()
        if boundary is None:
            return 0

        result = await self.session.execute(
            delete(UsageLogORM).where(UsageLogORM.id < boundary)
        )
        await self.session.commit()
        return result.rowcount or 0
