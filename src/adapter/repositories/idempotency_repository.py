"""SQLAlchemy implementation of IdempotencyRepository"""

from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy import delete
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.repositories._dialect import upsert_insert
from src.app.repositories.idempotency_repository import IdempotencyRepository
from src.domain.idempotency_record import IdempotencyRecord


class SqlAlchemyIdempotencyRepository(IdempotencyRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    def _triple(self, actor_id: str, route: str, key: str):
        return (
            IdempotencyRecord.actor_id == actor_id,
            IdempotencyRecord.route == route,
            IdempotencyRecord.key == key,
        )

    async def get(
        self, actor_id: str, route: str, key: str, now: datetime
    ) -> Optional[Dict[str, Any]]:
        stmt = select(IdempotencyRecord).where(
            *self._triple(actor_id, route, key),
            IdempotencyRecord.expires_at > now,
        )
        record = (await self.session.execute(stmt)).scalar_one_or_none()
        return record.stored_response if record else None

    async def put(
        self,
        actor_id: str,
        route: str,
        key: str,
        response: Dict[str, Any],
        expires_at: datetime,
        now: datetime,
    ) -> bool:
        await self.session.execute(
            delete(IdempotencyRecord).where(
                *self._triple(actor_id, route, key),
                IdempotencyRecord.expires_at <= now,
            )
        )

        result = await self.session.execute(
            upsert_insert(self.session, IdempotencyRecord)
            .values(
                actor_id=actor_id,
                route=route,
                key=key,
                stored_response=response,
                created_at=now,
                expires_at=expires_at,
            )
            .on_conflict_do_nothing(index_elements=["actor_id", "route", "key"])
            .returning(IdempotencyRecord.id)
        )
        return result.scalar_one_or_none() is not None

    async def purge_expired(self, now: datetime) -> int:
        result = await self.session.execute(
            delete(IdempotencyRecord).where(IdempotencyRecord.expires_at <= now)
        )
        return result.rowcount or 0
