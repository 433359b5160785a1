"""Unit tests for DispatchOutboundEvents use case and backoff schedule"""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.outbound.dispatch_outbound_events import (
    DispatchOutboundEvents,
    compute_backoff_seconds,
)
from src.domain.exceptions import ProviderError, ProviderTimeout
from src.domain.outbound_event import OutboundEvent, OutboundEventStatus


class TestComputeBackoff:

    @pytest.mark.parametrize(
        "attempt,expected",
        [(1, 30), (2, 60), (3, 120), (4, 240), (7, 1920), (8, 3600), (20, 3600)],
    )
    def test_doubles_up_to_cap(self, attempt, expected):
        assert compute_backoff_seconds(attempt, 30, 3600) == expected


def _event(event_id, attempt_count=0):
    return OutboundEvent(
        id=event_id,
        event_type="crm.contact_unlock.created",
        aggregate_type="contact_unlock",
        aggregate_id=f"unlock_{event_id}",
        dedupe_key=f"contact_unlock_created:unlock_{event_id}",
        payload={"unlock_id": f"unlock_{event_id}"},
        attempt_count=attempt_count,
    )


@pytest.fixture
def mock_outbound_repo():
    repo = MagicMock()
    repo.mark_dispatched = AsyncMock()
    repo.record_failure = AsyncMock()
    return repo


@pytest.fixture
def mock_crm_client():
    client = MagicMock()
    client.deliver = AsyncMock()
    return client


@pytest.fixture
def dispatcher(mock_uow, mock_outbound_repo, mock_crm_client, mock_clock):
    return DispatchOutboundEvents(
        uow=mock_uow,
        outbound_repo=mock_outbound_repo,
        crm_client=mock_crm_client,
        clock=mock_clock,
        batch_size=10,
        max_attempts=3,
        base_backoff_seconds=30,
        max_backoff_seconds=3600,
    )


@pytest.mark.asyncio
class TestDispatchOutboundEvents:

    async def test_delivers_due_events(self, dispatcher, mock_uow, mock_outbound_repo, mock_crm_client, fixed_now):
        """
        Given: Two due pending events
        When: The dispatcher runs
        Then: Both are delivered and marked dispatched with attempt_count + 1
        """
        mock_outbound_repo.claim_due = AsyncMock(return_value=[_event(1), _event(2, attempt_count=1)])

        result = await dispatcher.execute()

        assert result.is_ok()
        assert result.value.claimed == 2
        assert result.value.dispatched == 2
        mock_outbound_repo.claim_due.assert_called_once_with(fixed_now, 10, 3)
        mock_outbound_repo.mark_dispatched.assert_any_call(1, 1, fixed_now)
        mock_outbound_repo.mark_dispatched.assert_any_call(2, 2, fixed_now)
        mock_uow.commit.assert_called_once()

    async def test_failure_schedules_retry_with_backoff(
        self, dispatcher, mock_outbound_repo, mock_crm_client, fixed_now
    ):
        """
        Given: The CRM times out on the second attempt
        When: The dispatcher runs
        Then: The event stays pending, due again after base * 2
        """
        mock_outbound_repo.claim_due = AsyncMock(return_value=[_event(1, attempt_count=1)])
        mock_crm_client.deliver = AsyncMock(side_effect=ProviderTimeout("timed out"))

        result = await dispatcher.execute()

        assert result.value.retried == 1
        kwargs = mock_outbound_repo.record_failure.call_args.kwargs
        assert kwargs["attempt_count"] == 2
        assert kwargs["status"] == OutboundEventStatus.PENDING
        assert kwargs["next_attempt_at"] == fixed_now + timedelta(seconds=60)
        assert kwargs["error"] == "timed out"
        mock_outbound_repo.mark_dispatched.assert_not_called()

    async def test_last_attempt_marks_failed(self, dispatcher, mock_outbound_repo, mock_crm_client):
        mock_outbound_repo.claim_due = AsyncMock(return_value=[_event(1, attempt_count=2)])
        mock_crm_client.deliver = AsyncMock(side_effect=ProviderError("HTTP 503"))

        result = await dispatcher.execute()

        assert result.value.failed == 1
        kwargs = mock_outbound_repo.record_failure.call_args.kwargs
        assert kwargs["attempt_count"] == 3
        assert kwargs["status"] == OutboundEventStatus.FAILED

    async def test_one_failure_does_not_block_batch(self, dispatcher, mock_outbound_repo, mock_crm_client):
        mock_outbound_repo.claim_due = AsyncMock(return_value=[_event(1), _event(2)])
        mock_crm_client.deliver = AsyncMock(side_effect=[RuntimeError("bad payload"), None])

        result = await dispatcher.execute()

        assert result.value.retried == 1
        assert result.value.dispatched == 1
        assert "RuntimeError" in mock_outbound_repo.record_failure.call_args.kwargs["error"]

    async def test_nothing_due(self, dispatcher, mock_uow, mock_outbound_repo, mock_crm_client):
        mock_outbound_repo.claim_due = AsyncMock(return_value=[])

        result = await dispatcher.execute()

        assert result.value.claimed == 0
        mock_crm_client.deliver.assert_not_called()
        mock_uow.commit.assert_not_called()

    async def test_claim_error(self, dispatcher, mock_uow, mock_outbound_repo):
        mock_outbound_repo.claim_due = AsyncMock(side_effect=Exception("connection lost"))

        result = await dispatcher.execute()

        assert result.is_err()
        assert result.error.code == "DISPATCH_FAILED"
        mock_uow.rollback.assert_called()

    async def test_state_write_error_is_isolated(
        self, dispatcher, mock_uow, mock_outbound_repo, mock_crm_client
    ):
        """
        Given: Three delivered events, the second one's row can no longer be updated
        When: The dispatcher runs
        Then: The other two stay dispatched, the second is counted as a failed
              attempt and the batch commits
        """
        mock_outbound_repo.claim_due = AsyncMock(return_value=[_event(1), _event(2), _event(3)])
        mock_outbound_repo.mark_dispatched = AsyncMock(
            side_effect=[None, ValueError("Outbound event 2 not found"), None]
        )

        result = await dispatcher.execute()

        assert result.is_ok()
        assert result.value.dispatched == 2
        assert result.value.retried == 1
        assert result.value.errored == 0
        assert mock_uow.savepoint.call_count == 4
        kwargs = mock_outbound_repo.record_failure.call_args.kwargs
        assert mock_outbound_repo.record_failure.call_args.args == (2,)
        assert kwargs["attempt_count"] == 1
        assert "not found" in kwargs["error"]
        mock_uow.commit.assert_called_once()
        mock_uow.rollback.assert_not_called()

    async def test_unwritable_event_is_skipped(
        self, dispatcher, mock_uow, mock_outbound_repo, mock_crm_client
    ):
        """
        Given: A failed delivery whose failure record cannot be written either
        When: The dispatcher runs
        Then: That event is counted as errored and the next event is still dispatched
        """
        mock_outbound_repo.claim_due = AsyncMock(return_value=[_event(1), _event(2)])
        mock_crm_client.deliver = AsyncMock(side_effect=[ProviderError("HTTP 500"), None])
        mock_outbound_repo.record_failure = AsyncMock(side_effect=Exception("flush failed"))

        result = await dispatcher.execute()

        assert result.is_ok()
        assert result.value.errored == 1
        assert result.value.retried == 0
        assert result.value.dispatched == 1
        mock_outbound_repo.mark_dispatched.assert_called_once()
        mock_uow.commit.assert_called_once()
