"""SQLAlchemy implementation of PaymentWebhookEventRepository"""

from datetime import datetime
from typing import Any, Dict, Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.repositories._dialect import upsert_insert
from src.app.repositories.insert_result import AlreadyExists, Inserted, InsertResult
from src.app.repositories.payment_webhook_event_repository import PaymentWebhookEventRepository
from src.domain.payment_webhook_event import PaymentWebhookEvent
from src.domain.purchase_order import PaymentProvider


class SqlAlchemyPaymentWebhookEventRepository(PaymentWebhookEventRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def record_rejected(
        self, provider: PaymentProvider, event_type: str, payload: Dict[str, Any]
    ) -> PaymentWebhookEvent:
        event = PaymentWebhookEvent(
            provider=provider,
            provider_event_id=None,
            event_type=event_type,
            signature_valid=False,
            payload=payload,
            processing_note="invalid_signature",
        )
        self.session.add(event)
        await self.session.flush()
        return event

    async def get_or_create_locked(
        self,
        provider: PaymentProvider,
        provider_event_id: str,
        event_type: str,
        payload: Dict[str, Any],
    ) -> InsertResult[PaymentWebhookEvent]:
        result = await self.session.execute(
            upsert_insert(self.session, PaymentWebhookEvent)
            .values(
                provider=provider,
                provider_event_id=provider_event_id,
                event_type=event_type,
                signature_valid=True,
                payload=payload,
                received_at=datetime.utcnow(),
            )
            .on_conflict_do_nothing(index_elements=["provider", "provider_event_id"])
            .returning(PaymentWebhookEvent.id)
        )
        inserted_id = result.scalar_one_or_none()

        stmt = (
            select(PaymentWebhookEvent)
            .where(
                PaymentWebhookEvent.provider == provider,
                PaymentWebhookEvent.provider_event_id == provider_event_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        event = (await self.session.execute(stmt)).scalar_one()

        if inserted_id is not None:
            return Inserted(event)
        return AlreadyExists(event)

    async def mark_processed(
        self,
        event_id: int,
        note: str,
        now: datetime,
        purchase_order_id: Optional[str] = None,
        ledger_entry_id: Optional[int] = None,
    ) -> None:
        event = await self.session.get(PaymentWebhookEvent, event_id)
        if not event:
            raise ValueError(f"Webhook event {event_id} not found")

        event.processing_note = note
        event.processed_at = now
        if purchase_order_id:
            event.purchase_order_id = purchase_order_id
        if ledger_entry_id:
            event.ledger_entry_id = ledger_entry_id
        self.session.add(event)
        await self.session.flush()
