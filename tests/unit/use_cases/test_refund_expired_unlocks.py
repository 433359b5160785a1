"""Unit tests for RefundExpiredUnlocks use case

Tests cover:
- Due unlocks are refunded with a keyed +1 credit
- A failing unlock is skipped without aborting the batch
- An unlock that stopped being due is not counted as failed
- Batching continues until a claim returns nothing
"""

import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

from src.app.repositories.insert_result import Inserted
from src.app.use_cases.unlocks.refund_expired_unlocks import RefundExpiredUnlocks
from src.domain.ledger_entry import LedgerEntry, LedgerEntryKind
from src.domain.unlock_record import UnlockRecord


def _unlock(unlock_id, fixed_now, tenant_id="tenant_1"):
    return UnlockRecord(
        id=unlock_id,
        tenant_id=tenant_id,
        listing_id="listing_7",
        idempotency_key=f"key-{unlock_id}",
        ledger_entry_id=1,
        response_deadline_at=fixed_now - timedelta(minutes=1),
    )


def _refund_entry(entry_id, unlock_id):
    return LedgerEntry(
        id=entry_id,
        account_id="tenant_1",
        delta=1,
        kind=LedgerEntryKind.REFUND_TIMEOUT,
        reference=unlock_id,
        idempotency_key=f"refund:{unlock_id}",
        balance_after=1,
        created_at=datetime.utcnow(),
    )


@pytest.fixture
def mock_unlock_repo():
    repo = MagicMock()
    repo.mark_refunded = AsyncMock(return_value=True)
    repo.add_event = AsyncMock()
    return repo


@pytest.fixture
def mock_ledger_repo():
    repo = MagicMock()
    repo.apply_entry = AsyncMock(
        side_effect=lambda **kw: Inserted(_refund_entry(100, kw["reference"]))
    )
    return repo


@pytest.fixture
def mock_outbound_repo():
    repo = MagicMock()
    repo.enqueue = AsyncMock()
    return repo


@pytest.fixture
def sweep(mock_uow, mock_unlock_repo, mock_ledger_repo, mock_outbound_repo, mock_clock):
    return RefundExpiredUnlocks(
        uow=mock_uow,
        unlock_repo=mock_unlock_repo,
        ledger_repo=mock_ledger_repo,
        outbound_repo=mock_outbound_repo,
        clock=mock_clock,
        batch_size=2,
    )


@pytest.mark.asyncio
class TestRefundExpiredUnlocks:

    async def test_refunds_due_unlocks(
        self, sweep, mock_uow, mock_unlock_repo, mock_ledger_repo, mock_outbound_repo, fixed_now
    ):
        """
        Given: Two unlocks past their deadline
        When: The sweep runs
        Then: Each gets a +1 refund keyed by its id, is marked refunded and a CRM event is queued
        """
        mock_unlock_repo.claim_due = AsyncMock(
            side_effect=[[_unlock("u1", fixed_now), _unlock("u2", fixed_now)], []]
        )

        result = await sweep.execute()

        assert result.is_ok()
        assert result.value.refunded_count == 2
        assert result.value.failed_count == 0
        assert result.value.batches == 1

        keys = [c.kwargs["idempotency_key"] for c in mock_ledger_repo.apply_entry.call_args_list]
        assert keys == ["refund:u1", "refund:u2"]
        assert all(c.kwargs["delta"] == 1 for c in mock_ledger_repo.apply_entry.call_args_list)
        mock_unlock_repo.mark_refunded.assert_any_call("u1", 100, fixed_now)

        dedupe_keys = [c.kwargs["dedupe_key"] for c in mock_outbound_repo.enqueue.call_args_list]
        assert dedupe_keys == ["contact_unlock_refunded:u1", "contact_unlock_refunded:u2"]
        assert mock_uow.savepoint.call_count == 2
        mock_uow.commit.assert_called_once()

    async def test_failure_is_isolated_and_excluded(
        self, sweep, mock_unlock_repo, mock_ledger_repo, fixed_now
    ):
        """
        Given: Refunding u1 raises
        When: The sweep runs
        Then: u2 is still refunded, u1 is counted failed and excluded from later claims
        """
        mock_unlock_repo.claim_due = AsyncMock(
            side_effect=[[_unlock("u1", fixed_now), _unlock("u2", fixed_now)], []]
        )

        async def apply_entry(**kw):
            if kw["reference"] == "u1":
                raise Exception("deadlock detected")
            return Inserted(_refund_entry(101, kw["reference"]))

        mock_ledger_repo.apply_entry = AsyncMock(side_effect=apply_entry)

        result = await sweep.execute()

        assert result.is_ok()
        assert result.value.refunded_count == 1
        assert result.value.failed_count == 1
        second_claim_excluded = mock_unlock_repo.claim_due.call_args_list[1].args[2]
        assert "u1" in second_claim_excluded

    async def test_unlock_no_longer_due_is_skipped(self, sweep, mock_unlock_repo, mock_outbound_repo, fixed_now):
        """
        Given: The owner responded after the claim
        When: The guarded refund update matches no row
        Then: Nothing is counted and no CRM event is queued
        """
        mock_unlock_repo.claim_due = AsyncMock(side_effect=[[_unlock("u1", fixed_now)], []])
        mock_unlock_repo.mark_refunded = AsyncMock(return_value=False)

        result = await sweep.execute()

        assert result.is_ok()
        assert result.value.refunded_count == 0
        assert result.value.failed_count == 0
        mock_outbound_repo.enqueue.assert_not_called()

    async def test_processes_multiple_batches(self, sweep, mock_uow, mock_unlock_repo, fixed_now):
        mock_unlock_repo.claim_due = AsyncMock(
            side_effect=[
                [_unlock("u1", fixed_now), _unlock("u2", fixed_now)],
                [_unlock("u3", fixed_now)],
                [],
            ]
        )

        result = await sweep.execute()

        assert result.value.refunded_count == 3
        assert result.value.batches == 2
        assert mock_uow.commit.call_count == 2
        assert mock_unlock_repo.claim_due.call_args_list[0].args[1] == 2

    async def test_nothing_due(self, sweep, mock_uow, mock_unlock_repo):
        mock_unlock_repo.claim_due = AsyncMock(return_value=[])

        result = await sweep.execute()

        assert result.is_ok()
        assert result.value.refunded_count == 0
        assert result.value.batches == 0
        mock_uow.commit.assert_not_called()

    async def test_claim_failure_aborts_run(self, sweep, mock_uow, mock_unlock_repo):
        mock_unlock_repo.claim_due = AsyncMock(side_effect=Exception("database unavailable"))

        result = await sweep.execute()

        assert result.is_err()
        assert result.error.code == "REFUND_SWEEP_FAILED"
        mock_uow.rollback.assert_called()
