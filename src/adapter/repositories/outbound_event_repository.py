"""SQLAlchemy implementation of OutboundEventRepository"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.repositories._dialect import upsert_insert
from src.app.repositories.insert_result import AlreadyExists, Inserted, InsertResult
from src.app.repositories.outbound_event_repository import OutboundEventRepository
from src.domain.outbound_event import OutboundEvent, OutboundEventStatus


class SqlAlchemyOutboundEventRepository(OutboundEventRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def enqueue(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: Optional[str],
        dedupe_key: str,
        payload: Dict[str, Any],
        now: datetime,
    ) -> InsertResult[OutboundEvent]:
        result = await self.session.execute(
            upsert_insert(self.session, OutboundEvent)
            .values(
                event_type=event_type,
                aggregate_type=aggregate_type,
                aggregate_id=aggregate_id,
                dedupe_key=dedupe_key,
                payload=payload,
                status=OutboundEventStatus.PENDING,
                attempt_count=0,
                next_attempt_at=now,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["dedupe_key"])
            .returning(OutboundEvent.id)
        )
        event_id = result.scalar_one_or_none()

        if event_id is not None:
            return Inserted(await self.session.get(OutboundEvent, event_id))

        stmt = select(OutboundEvent).where(OutboundEvent.dedupe_key == dedupe_key)
        return AlreadyExists((await self.session.execute(stmt)).scalar_one())

    async def get_by_id(self, event_id: int) -> Optional[OutboundEvent]:
        return await self.session.get(OutboundEvent, event_id)

    async def claim_due(self, now: datetime, limit: int, max_attempts: int) -> List[OutboundEvent]:
        stmt = (
            select(OutboundEvent)
            .where(
                OutboundEvent.status == OutboundEventStatus.PENDING,
                OutboundEvent.next_attempt_at <= now,
                OutboundEvent.attempt_count < max_attempts,
            )
            .order_by(OutboundEvent.next_attempt_at, OutboundEvent.id)
            .limit(limit)
            .with_for_update(skip_locked=True)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def _get_or_raise(self, event_id: int) -> OutboundEvent:
        event = await self.session.get(OutboundEvent, event_id)
        if not event:
            raise ValueError(f"Outbound event {event_id} not found")
        return event

    async def mark_dispatched(self, event_id: int, attempt_count: int, now: datetime) -> None:
        event = await self._get_or_raise(event_id)
        event.status = OutboundEventStatus.DISPATCHED
        event.attempt_count = attempt_count
        event.last_error = None
        event.dispatched_at = now
        event.updated_at = now
        self.session.add(event)
        await self.session.flush()

    async def record_failure(
        self,
        event_id: int,
        attempt_count: int,
        status: OutboundEventStatus,
        next_attempt_at: datetime,
        error: str,
        now: datetime,
    ) -> None:
        event = await self._get_or_raise(event_id)
        event.status = status
        event.attempt_count = attempt_count
        event.next_attempt_at = next_attempt_at
        event.last_error = error
        event.updated_at = now
        self.session.add(event)
        await self.session.flush()
