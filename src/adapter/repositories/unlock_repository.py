"""SQLAlchemy implementation of UnlockRepository"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.repositories._dialect import row_values, upsert_insert
from src.app.repositories.insert_result import AlreadyExists, Inserted, InsertResult
from src.app.repositories.unlock_repository import UnlockRepository
from src.domain.unlock_record import (
    OwnerResponseStatus,
    ResponseChannel,
    UnlockEvent,
    UnlockRecord,
    UnlockStatus,
)

_OPEN = (
    UnlockRecord.owner_response_status == OwnerResponseStatus.PENDING,
    UnlockRecord.unlock_status == UnlockStatus.ACTIVE,
)


class SqlAlchemyUnlockRepository(UnlockRepository):
    """
    SQLAlchemy implementation of UnlockRepository

    Features:
    - Insert-or-fetch on the (tenant, listing, key) unique constraint
    - Guarded status transitions checked by affected row count
    - Due-record claims with FOR UPDATE SKIP LOCKED
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, unlock_id: str, for_update: bool = False) -> Optional[UnlockRecord]:
        stmt = select(UnlockRecord).where(UnlockRecord.id == unlock_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_tenant_key(self, tenant_id: str, idempotency_key: str) -> Optional[UnlockRecord]:
        stmt = (
            select(UnlockRecord)
            .where(
                UnlockRecord.tenant_id == tenant_id,
                UnlockRecord.idempotency_key == idempotency_key,
            )
            .order_by(UnlockRecord.created_at)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, record: UnlockRecord) -> InsertResult[UnlockRecord]:
        result = await self.session.execute(
            upsert_insert(self.session, UnlockRecord)
            .values(**row_values(record))
            .on_conflict_do_nothing(index_elements=["tenant_id", "listing_id", "idempotency_key"])
            .returning(UnlockRecord.id)
        )
        unlock_id = result.scalar_one_or_none()

        if unlock_id is not None:
            return Inserted(await self.session.get(UnlockRecord, unlock_id))

        stmt = select(UnlockRecord).where(
            UnlockRecord.tenant_id == record.tenant_id,
            UnlockRecord.listing_id == record.listing_id,
            UnlockRecord.idempotency_key == record.idempotency_key,
        )
        existing = (await self.session.execute(stmt)).scalar_one()
        return AlreadyExists(existing)

    async def mark_responded(
        self, unlock_id: str, responded_at: datetime, channel: ResponseChannel
    ) -> bool:
        stmt = (
            update(UnlockRecord)
            .where(UnlockRecord.id == unlock_id, *_OPEN)
            .values(
                owner_response_status=OwnerResponseStatus.RESPONDED,
                owner_responded_at=responded_at,
                response_channel=channel,
                updated_at=responded_at,
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def claim_due(
        self, now: datetime, limit: int, exclude_ids: Iterable[str] = ()
    ) -> List[UnlockRecord]:
        stmt = select(UnlockRecord).where(*_OPEN, UnlockRecord.response_deadline_at <= now)

        excluded = list(exclude_ids)
        if excluded:
            stmt = stmt.where(UnlockRecord.id.not_in(excluded))

        stmt = (
            stmt.order_by(UnlockRecord.response_deadline_at)
            .limit(limit)
            .with_for_update(skip_locked=True)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def mark_refunded(self, unlock_id: str, refund_entry_id: int, now: datetime) -> bool:
        stmt = (
            update(UnlockRecord)
            .where(UnlockRecord.id == unlock_id, *_OPEN)
            .values(
                owner_response_status=OwnerResponseStatus.TIMEOUT_REFUNDED,
                unlock_status=UnlockStatus.REFUNDED,
                refund_entry_id=refund_entry_id,
                updated_at=now,
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def add_event(
        self,
        unlock_id: str,
        actor_role: str,
        event_type: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> UnlockEvent:
        event = UnlockEvent(
            unlock_id=unlock_id,
            actor_role=actor_role,
            event_type=event_type,
            event_metadata=metadata or {},
        )
        self.session.add(event)
        await self.session.flush()
        return event

    async def list_events(self, unlock_id: str) -> List[UnlockEvent]:
        stmt = (
            select(UnlockEvent)
            .where(UnlockEvent.unlock_id == unlock_id)
            .order_by(UnlockEvent.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
