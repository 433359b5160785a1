"""Unit tests for the in-memory storage backend

Tests cover:
- Row locks held until commit or rollback
- Rollback and savepoint restore journaled changes
- Repository insert-or-fetch and guarded transitions
"""

import asyncio
import pytest
from datetime import datetime, timedelta

from src.adapter.repositories.in_memory import (
    InMemoryLedgerRepository,
    InMemoryOutboundEventRepository,
    InMemorySession,
    InMemoryStore,
    InMemoryUnlockRepository,
)
from src.adapter.services.unit_of_work import InMemoryUnitOfWork
from src.domain.exceptions import InsufficientBalance
from src.domain.ledger_entry import LedgerEntryKind
from src.domain.unlock_record import OwnerResponseStatus, ResponseChannel, UnlockRecord


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.mark.asyncio
class TestInMemorySession:

    async def test_lock_blocks_until_commit(self, store):
        first = InMemorySession(store)
        second = InMemorySession(store)
        await first.lock(("account", "user_1"))

        waiter = asyncio.create_task(second.lock(("account", "user_1")))
        await asyncio.sleep(0)
        assert not waiter.done()

        await first.commit()
        await asyncio.wait_for(waiter, timeout=1)
        await second.rollback()

    async def test_try_lock_skips_held_rows(self, store):
        first = InMemorySession(store)
        second = InMemorySession(store)
        await first.lock(("unlock", "u1"))

        assert await second.try_lock(("unlock", "u1")) is False
        assert await first.try_lock(("unlock", "u1")) is True
        await first.rollback()
        assert await second.try_lock(("unlock", "u1")) is True
        await second.rollback()

    async def test_rollback_restores_state(self, store):
        session = InMemorySession(store)
        ledger = InMemoryLedgerRepository(session)

        await ledger.apply_entry("user_1", 5, LedgerEntryKind.ADMIN_ADJUST, idempotency_key="k1")
        await session.rollback()

        assert store.entries == {}
        assert store.entry_keys == {}
        assert "user_1" not in store.accounts

    async def test_savepoint_undoes_only_inner_work(self, store):
        session = InMemorySession(store)
        uow = InMemoryUnitOfWork(session)
        ledger = InMemoryLedgerRepository(session)

        await ledger.apply_entry("user_1", 2, LedgerEntryKind.GRANT_SIGNUP, idempotency_key="signup_grant")
        with pytest.raises(RuntimeError):
            async with uow.savepoint():
                await ledger.apply_entry("user_1", 1, LedgerEntryKind.REFUND_TIMEOUT, idempotency_key="refund:u1")
                raise RuntimeError("boom")
        await uow.commit()

        assert store.accounts["user_1"].balance == 2
        assert len(store.entries) == 1

    async def test_released_locks_are_dropped(self, store):
        """
        Given: Sessions that lock, contend on and skip-lock a set of keys
        When: Every session has committed or rolled back
        Then: The store keeps no lock objects behind
        """
        first = InMemorySession(store)
        second = InMemorySession(store)
        await first.lock(("account", "user_1"))
        await first.try_lock(("unlock", "u1"))
        assert await second.try_lock(("unlock", "u1")) is False

        waiter = asyncio.create_task(second.lock(("account", "user_1")))
        await asyncio.sleep(0)
        await first.commit()
        await asyncio.wait_for(waiter, timeout=1)
        assert set(store._locks) == {("account", "user_1")}

        await second.rollback()
        assert store._locks == {}
        assert store._lock_users == {}

    async def test_cancelled_waiter_leaves_no_lock(self, store):
        first = InMemorySession(store)
        second = InMemorySession(store)
        await first.lock(("order", "o1"))

        waiter = asyncio.create_task(second.lock(("order", "o1")))
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        await first.rollback()

        assert store._locks == {}


@pytest.mark.asyncio
class TestInMemoryLedgerRepository:

    async def test_apply_entry_is_keyed(self, store):
        session = InMemorySession(store)
        ledger = InMemoryLedgerRepository(session)

        first = await ledger.apply_entry("user_1", 2, LedgerEntryKind.GRANT_SIGNUP, idempotency_key="signup_grant")
        second = await ledger.apply_entry("user_1", 2, LedgerEntryKind.GRANT_SIGNUP, idempotency_key="signup_grant")

        assert first.inserted is True
        assert second.inserted is False
        assert second.record.id == first.record.id
        assert await ledger.get_balance("user_1") == 2
        await session.commit()

    async def test_overdraft_raises(self, store):
        session = InMemorySession(store)
        ledger = InMemoryLedgerRepository(session)

        with pytest.raises(InsufficientBalance):
            await ledger.apply_entry("user_1", -1, LedgerEntryKind.DEBIT_UNLOCK)
        await session.rollback()

    async def test_zero_delta_rejected(self, store):
        ledger = InMemoryLedgerRepository(InMemorySession(store))

        with pytest.raises(ValueError):
            await ledger.apply_entry("user_1", 0, LedgerEntryKind.ADMIN_ADJUST)

    async def test_list_entries_newest_first(self, store):
        session = InMemorySession(store)
        ledger = InMemoryLedgerRepository(session)
        await ledger.apply_entry("user_1", 3, LedgerEntryKind.ADMIN_ADJUST)
        await ledger.apply_entry("user_1", -1, LedgerEntryKind.DEBIT_UNLOCK)
        await ledger.apply_entry("user_2", 1, LedgerEntryKind.ADMIN_ADJUST)

        entries, total = await ledger.list_entries("user_1", limit=1, offset=0)

        assert total == 2
        assert entries[0].delta == -1
        assert entries[0].balance_after == 2
        assert await ledger.sum_deltas("user_1") == 2


@pytest.mark.asyncio
class TestInMemoryUnlockRepository:

    async def test_guarded_transitions_are_exclusive(self, store):
        session = InMemorySession(store)
        unlocks = InMemoryUnlockRepository(session)
        now = datetime(2024, 1, 1, 12, 0, 0)
        record = UnlockRecord(
            tenant_id="tenant_1",
            listing_id="listing_7",
            idempotency_key="key-1",
            ledger_entry_id=1,
            response_deadline_at=now - timedelta(minutes=1),
        )
        await unlocks.create(record)

        assert await unlocks.mark_responded(record.id, now, ResponseChannel.CALL) is True
        assert await unlocks.mark_refunded(record.id, 9, now) is False
        assert store.unlocks[record.id].owner_response_status == OwnerResponseStatus.RESPONDED
        assert await unlocks.claim_due(now, 10) == []
        await session.commit()

    async def test_claim_skips_rows_locked_elsewhere(self, store):
        now = datetime(2024, 1, 1, 12, 0, 0)
        setup = InMemorySession(store)
        repo = InMemoryUnlockRepository(setup)
        records = []
        for i in range(3):
            record = UnlockRecord(
                tenant_id="tenant_1",
                listing_id=f"listing_{i}",
                idempotency_key="key-1",
                ledger_entry_id=1,
                response_deadline_at=now - timedelta(minutes=10 - i),
            )
            await repo.create(record)
            records.append(record)
        await setup.commit()

        first = InMemorySession(store)
        second = InMemorySession(store)
        claimed_first = await InMemoryUnlockRepository(first).claim_due(now, 2)
        claimed_second = await InMemoryUnlockRepository(second).claim_due(now, 2)

        assert [r.id for r in claimed_first] == [records[0].id, records[1].id]
        assert [r.id for r in claimed_second] == [records[2].id]
        await first.rollback()
        await second.rollback()


@pytest.mark.asyncio
class TestInMemoryOutboundEventRepository:

    async def test_dedupe_key_enqueues_once(self, store):
        session = InMemorySession(store)
        outbound = InMemoryOutboundEventRepository(session)
        now = datetime(2024, 1, 1)

        first = await outbound.enqueue("crm.x", "thing", "1", "x:1", {"a": 1}, now)
        second = await outbound.enqueue("crm.x", "thing", "1", "x:1", {"a": 2}, now)

        assert first.inserted and not second.inserted
        assert second.record.payload == {"a": 1}
        assert len(store.outbound_events) == 1
        await session.commit()
