"""In-memory repository implementations

Mirror the SQL repositories on top of InMemorySession: unique keys are
protected by a row lock taken before the existence check, and claims use
try_lock to skip rows held by another session.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
from src.adapter.repositories.in_memory.store import InMemorySession
from src.app.repositories.idempotency_repository import IdempotencyRepository
from src.app.repositories.insert_result import AlreadyExists, Inserted, InsertResult
from src.app.repositories.ledger_repository import LedgerRepository
from src.app.repositories.listing_repository import ListingRepository
from src.app.repositories.outbound_event_repository import OutboundEventRepository
from src.app.repositories.payment_webhook_event_repository import PaymentWebhookEventRepository
from src.app.repositories.purchase_order_repository import PurchaseOrderRepository
from src.app.repositories.unlock_repository import UnlockRepository
from src.domain.credit_account import CreditAccount
from src.domain.exceptions import InsufficientBalance
from src.domain.idempotency_record import IdempotencyRecord
from src.domain.ledger_entry import LedgerEntry, LedgerEntryKind
from src.domain.listing import Listing
from src.domain.outbound_event import OutboundEvent, OutboundEventStatus
from src.domain.payment_webhook_event import PaymentWebhookEvent
from src.domain.purchase_order import PaymentProvider, PurchaseOrder, PurchaseOrderStatus
from src.domain.unlock_record import (
    OwnerResponseStatus,
    ResponseChannel,
    UnlockEvent,
    UnlockRecord,
    UnlockStatus,
)


class _InMemoryRepository:
    def __init__(self, session: InMemorySession):
        self.session = session
        self.store = session.store


class InMemoryLedgerRepository(_InMemoryRepository, LedgerRepository):

    def _ensure_account(self, account_id: str) -> CreditAccount:
        account = self.store.accounts.get(account_id)
        if account is None:
            now = datetime.utcnow()
            account = CreditAccount(account_id=account_id, balance=0, created_at=now, updated_at=now)
            self.session.put(self.store.accounts, account_id, account)
        return account

    async def apply_entry(
        self,
        account_id: str,
        delta: int,
        kind: LedgerEntryKind,
        reference: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> InsertResult[LedgerEntry]:
        if delta == 0:
            raise ValueError("Ledger entry delta must be non-zero")

        await self.session.lock(("account", account_id))
        account = self._ensure_account(account_id)

        if idempotency_key is not None:
            existing = await self.get_entry_by_key(account_id, idempotency_key)
            if existing:
                return AlreadyExists(existing)

        new_balance = account.balance + delta
        if delta < 0 and new_balance < 0:
            raise InsufficientBalance(account_id, account.balance, delta)

        now = datetime.utcnow()
        entry = LedgerEntry(
            id=self.store.next_id("ledger_entries"),
            account_id=account_id,
            delta=delta,
            kind=kind,
            reference=reference,
            idempotency_key=idempotency_key,
            balance_after=new_balance,
            created_at=now,
        )
        self.session.put(self.store.entries, entry.id, entry)
        if idempotency_key is not None:
            self.session.put(self.store.entry_keys, (account_id, idempotency_key), entry.id)
        self.session.update(account, balance=new_balance, updated_at=now)
        return Inserted(entry)

    async def get_balance(self, account_id: str) -> int:
        return self._ensure_account(account_id).balance

    async def get_account(self, account_id: str) -> Optional[CreditAccount]:
        return self.store.accounts.get(account_id)

    async def list_accounts(self) -> List[CreditAccount]:
        return [self.store.accounts[k] for k in sorted(self.store.accounts)]

    async def list_entries(
        self, account_id: str, limit: int = 20, offset: int = 0
    ) -> Tuple[List[LedgerEntry], int]:
        entries = [e for e in self.store.entries.values() if e.account_id == account_id]
        entries.sort(key=lambda e: (e.created_at, e.id), reverse=True)
        return entries[offset:offset + limit], len(entries)

    async def get_entry_by_key(
        self, account_id: str, idempotency_key: str
    ) -> Optional[LedgerEntry]:
        entry_id = self.store.entry_keys.get((account_id, idempotency_key))
        return self.store.entries.get(entry_id) if entry_id is not None else None

    async def sum_deltas(self, account_id: str) -> int:
        return sum(e.delta for e in self.store.entries.values() if e.account_id == account_id)


class InMemoryIdempotencyRepository(_InMemoryRepository, IdempotencyRepository):

    async def get(
        self, actor_id: str, route: str, key: str, now: datetime
    ) -> Optional[Dict[str, Any]]:
        record = self.store.idempotency.get((actor_id, route, key))
        if record is None or record.is_expired(now):
            return None
        return record.stored_response

    async def put(
        self,
        actor_id: str,
        route: str,
        key: str,
        response: Dict[str, Any],
        expires_at: datetime,
        now: datetime,
    ) -> bool:
        triple = (actor_id, route, key)
        await self.session.lock(("idempotency", triple))

        existing = self.store.idempotency.get(triple)
        if existing is not None and not existing.is_expired(now):
            return False

        record = IdempotencyRecord(
            id=self.store.next_id("idempotency_records"),
            actor_id=actor_id,
            route=route,
            key=key,
            stored_response=response,
            created_at=now,
            expires_at=expires_at,
        )
        self.session.put(self.store.idempotency, triple, record)
        return True

    async def purge_expired(self, now: datetime) -> int:
        expired = [k for k, r in self.store.idempotency.items() if r.is_expired(now)]
        for triple in expired:
            self.session.delete(self.store.idempotency, triple)
        return len(expired)


def _is_open(record: UnlockRecord) -> bool:
    return (
        record.owner_response_status == OwnerResponseStatus.PENDING
        and record.unlock_status == UnlockStatus.ACTIVE
    )


class InMemoryUnlockRepository(_InMemoryRepository, UnlockRepository):

    async def get_by_id(self, unlock_id: str, for_update: bool = False) -> Optional[UnlockRecord]:
        if for_update:
            await self.session.lock(("unlock", unlock_id))
        return self.store.unlocks.get(unlock_id)

    async def get_by_tenant_key(self, tenant_id: str, idempotency_key: str) -> Optional[UnlockRecord]:
        matches = [
            r for r in self.store.unlocks.values()
            if r.tenant_id == tenant_id and r.idempotency_key == idempotency_key
        ]
        matches.sort(key=lambda r: r.created_at)
        return matches[0] if matches else None

    async def create(self, record: UnlockRecord) -> InsertResult[UnlockRecord]:
        unique = (record.tenant_id, record.listing_id, record.idempotency_key)
        await self.session.lock(("unlock_key", unique))

        existing_id = self.store.unlock_keys.get(unique)
        if existing_id is not None:
            return AlreadyExists(self.store.unlocks[existing_id])

        self.session.put(self.store.unlocks, record.id, record)
        self.session.put(self.store.unlock_keys, unique, record.id)
        return Inserted(record)

    async def mark_responded(
        self, unlock_id: str, responded_at: datetime, channel: ResponseChannel
    ) -> bool:
        record = self.store.unlocks.get(unlock_id)
        if record is None or not _is_open(record):
            return False
        self.session.update(
            record,
            owner_response_status=OwnerResponseStatus.RESPONDED,
            owner_responded_at=responded_at,
            response_channel=channel,
            updated_at=responded_at,
        )
        return True

    async def claim_due(
        self, now: datetime, limit: int, exclude_ids: Iterable[str] = ()
    ) -> List[UnlockRecord]:
        excluded = set(exclude_ids)
        due = [
            r for r in self.store.unlocks.values()
            if _is_open(r) and r.response_deadline_at <= now and r.id not in excluded
        ]
        due.sort(key=lambda r: r.response_deadline_at)

        claimed = []
        for record in due:
            if len(claimed) >= limit:
                break
            if await self.session.try_lock(("unlock", record.id)) and _is_open(record):
                claimed.append(record)
        return claimed

    async def mark_refunded(self, unlock_id: str, refund_entry_id: int, now: datetime) -> bool:
        record = self.store.unlocks.get(unlock_id)
        if record is None or not _is_open(record):
            return False
        self.session.update(
            record,
            owner_response_status=OwnerResponseStatus.TIMEOUT_REFUNDED,
            unlock_status=UnlockStatus.REFUNDED,
            refund_entry_id=refund_entry_id,
            updated_at=now,
        )
        return True

    async def add_event(
        self,
        unlock_id: str,
        actor_role: str,
        event_type: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> UnlockEvent:
        event = UnlockEvent(
            id=self.store.next_id("unlock_events"),
            unlock_id=unlock_id,
            actor_role=actor_role,
            event_type=event_type,
            event_metadata=metadata or {},
            created_at=datetime.utcnow(),
        )
        self.session.put(self.store.unlock_events, event.id, event)
        return event

    async def list_events(self, unlock_id: str) -> List[UnlockEvent]:
        events = [e for e in self.store.unlock_events.values() if e.unlock_id == unlock_id]
        return sorted(events, key=lambda e: e.id)


class InMemoryListingRepository(_InMemoryRepository, ListingRepository):

    async def get_by_id(self, listing_id: str) -> Optional[Listing]:
        return self.store.listings.get(listing_id)


class InMemoryPurchaseOrderRepository(_InMemoryRepository, PurchaseOrderRepository):

    async def create(self, order: PurchaseOrder) -> InsertResult[PurchaseOrder]:
        unique = (order.user_id, order.idempotency_key)
        await self.session.lock(("order_key", unique))

        existing_id = self.store.order_keys.get(unique)
        if existing_id is not None:
            return AlreadyExists(self.store.orders[existing_id])

        self.session.put(self.store.orders, order.id, order)
        self.session.put(self.store.order_keys, unique, order.id)
        self.session.put(
            self.store.order_provider_ids, (order.provider, order.provider_order_id), order.id
        )
        return Inserted(order)

    async def get_by_provider_order_id(
        self, provider: PaymentProvider, provider_order_id: str, for_update: bool = False
    ) -> Optional[PurchaseOrder]:
        order_id = self.store.order_provider_ids.get((provider, provider_order_id))
        if order_id is None:
            return None
        if for_update:
            await self.session.lock(("order", order_id))
        return self.store.orders.get(order_id)

    async def update_status(
        self,
        order_id: str,
        status: PurchaseOrderStatus,
        provider_payment_id: Optional[str],
        now: datetime,
    ) -> None:
        order = self.store.orders.get(order_id)
        if order is None:
            raise ValueError(f"Purchase order {order_id} not found")

        changes = {"status": status, "updated_at": now}
        if provider_payment_id:
            changes["provider_payment_id"] = provider_payment_id
        self.session.update(order, **changes)


class InMemoryPaymentWebhookEventRepository(_InMemoryRepository, PaymentWebhookEventRepository):

    def _add(self, event: PaymentWebhookEvent) -> PaymentWebhookEvent:
        event.id = self.store.next_id("payment_webhook_events")
        self.session.put(self.store.webhook_events, event.id, event)
        return event

    async def record_rejected(
        self, provider: PaymentProvider, event_type: str, payload: Dict[str, Any]
    ) -> PaymentWebhookEvent:
        return self._add(
            PaymentWebhookEvent(
                provider=provider,
                provider_event_id=None,
                event_type=event_type,
                signature_valid=False,
                payload=payload,
                processing_note="invalid_signature",
                received_at=datetime.utcnow(),
            )
        )

    async def get_or_create_locked(
        self,
        provider: PaymentProvider,
        provider_event_id: str,
        event_type: str,
        payload: Dict[str, Any],
    ) -> InsertResult[PaymentWebhookEvent]:
        unique = (provider, provider_event_id)
        await self.session.lock(("webhook_event", unique))

        existing_id = self.store.webhook_event_keys.get(unique)
        if existing_id is not None:
            return AlreadyExists(self.store.webhook_events[existing_id])

        event = self._add(
            PaymentWebhookEvent(
                provider=provider,
                provider_event_id=provider_event_id,
                event_type=event_type,
                signature_valid=True,
                payload=payload,
                received_at=datetime.utcnow(),
            )
        )
        self.session.put(self.store.webhook_event_keys, unique, event.id)
        return Inserted(event)

    async def mark_processed(
        self,
        event_id: int,
        note: str,
        now: datetime,
        purchase_order_id: Optional[str] = None,
        ledger_entry_id: Optional[int] = None,
    ) -> None:
        event = self.store.webhook_events.get(event_id)
        if event is None:
            raise ValueError(f"Webhook event {event_id} not found")

        changes = {"processing_note": note, "processed_at": now}
        if purchase_order_id:
            changes["purchase_order_id"] = purchase_order_id
        if ledger_entry_id:
            changes["ledger_entry_id"] = ledger_entry_id
        self.session.update(event, **changes)


class InMemoryOutboundEventRepository(_InMemoryRepository, OutboundEventRepository):

    async def enqueue(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: Optional[str],
        dedupe_key: str,
        payload: Dict[str, Any],
        now: datetime,
    ) -> InsertResult[OutboundEvent]:
        await self.session.lock(("outbound_key", dedupe_key))

        existing_id = self.store.outbound_dedupe_keys.get(dedupe_key)
        if existing_id is not None:
            return AlreadyExists(self.store.outbound_events[existing_id])

        event = OutboundEvent(
            id=self.store.next_id("outbound_events"),
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
        self.session.put(self.store.outbound_events, event.id, event)
        self.session.put(self.store.outbound_dedupe_keys, dedupe_key, event.id)
        return Inserted(event)

    async def get_by_id(self, event_id: int) -> Optional[OutboundEvent]:
        return self.store.outbound_events.get(event_id)

    async def claim_due(self, now: datetime, limit: int, max_attempts: int) -> List[OutboundEvent]:
        due = [
            e for e in self.store.outbound_events.values()
            if e.status == OutboundEventStatus.PENDING
            and e.next_attempt_at <= now
            and e.attempt_count < max_attempts
        ]
        due.sort(key=lambda e: (e.next_attempt_at, e.id))

        claimed = []
        for event in due:
            if len(claimed) >= limit:
                break
            if await self.session.try_lock(("outbound", event.id)):
                claimed.append(event)
        return claimed

    def _get_or_raise(self, event_id: int) -> OutboundEvent:
        event = self.store.outbound_events.get(event_id)
        if event is None:
            raise ValueError(f"Outbound event {event_id} not found")
        return event

    async def mark_dispatched(self, event_id: int, attempt_count: int, now: datetime) -> None:
        self.session.update(
            self._get_or_raise(event_id),
            status=OutboundEventStatus.DISPATCHED,
            attempt_count=attempt_count,
            last_error=None,
            dispatched_at=now,
            updated_at=now,
        )

    async def record_failure(
        self,
        event_id: int,
        attempt_count: int,
        status: OutboundEventStatus,
        next_attempt_at: datetime,
        error: str,
        now: datetime,
    ) -> None:
        self.session.update(
            self._get_or_raise(event_id),
            status=status,
            attempt_count=attempt_count,
            next_attempt_at=next_attempt_at,
            last_error=error,
            updated_at=now,
        )
