"""DispatchOutboundEvents Use Case

Delivers due outbound events to the CRM with at-least-once semantics and
exponential backoff between attempts.
"""

import logging
from datetime import timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.outbound_event_repository import OutboundEventRepository
from src.app.services.clock import Clock
from src.app.services.crm_client import CrmClient
from src.app.services.unit_of_work import UnitOfWork
from src.domain.exceptions import ProviderError
from src.domain.outbound_event import OutboundEventStatus
from .dtos import DispatchResultDTO

logger = logging.getLogger(__name__)


def compute_backoff_seconds(attempt: int, base_seconds: int = 30, max_seconds: int = 3600) -> int:
    """Delay before the next attempt after the attempt-th failure"""
    return min(base_seconds * 2 ** (attempt - 1), max_seconds)


class DispatchOutboundEvents:
    """
    Use Case: Dispatch one batch of outbound events

    Business Rules:
    1. Only pending events that are due and under max_attempts are claimed
    2. Claims skip rows locked by a concurrent dispatcher
    3. Success -> dispatched; failure -> attempt_count + 1 and either a
       backoff reschedule or, at max_attempts, failed
    4. Delivery may repeat after a crash between deliver and commit, so
       receivers deduplicate on the dedupe key
    5. Each event's state change is written in its own savepoint; a bad
       record never undoes the rest of the batch
    """

    def __init__(
        self,
        uow: UnitOfWork,
        outbound_repo: OutboundEventRepository,
        crm_client: CrmClient,
        clock: Clock,
        batch_size: int = 50,
        max_attempts: int = 6,
        base_backoff_seconds: int = 30,
        max_backoff_seconds: int = 3600,
    ):
        self.uow = uow
        self.outbound_repo = outbound_repo
        self.crm_client = crm_client
        self.clock = clock
        self.batch_size = batch_size
        self.max_attempts = max_attempts
        self.base_backoff_seconds = base_backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds

    async def execute(self) -> Result[DispatchResultDTO]:
        result = DispatchResultDTO()

        try:
            now = self.clock.now()
            claimed = await self.outbound_repo.claim_due(now, self.batch_size, self.max_attempts)
            result.claimed = len(claimed)

            if not claimed:
                await self.uow.rollback()
                return Return.ok(result)

            for event in claimed:
                event_id = event.id
                attempt = event.attempt_count + 1
                error = await self._deliver(event)

                try:
                    async with self.uow.savepoint():
                        if error is None:
                            await self.outbound_repo.mark_dispatched(event_id, attempt, now)
                            result.dispatched += 1
                        else:
                            await self._record_failure(event_id, attempt, error, now, result)
                except Exception as e:
                    await self._record_write_error(event_id, attempt, e, now, result)

            await self.uow.commit()

            logger.info(
                f"Outbound dispatch: claimed={result.claimed}, dispatched={result.dispatched}, "
                f"retried={result.retried}, failed={result.failed}, errored={result.errored}"
            )
            return Return.ok(result)

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Outbound dispatch aborted: {e}")
            return Return.err(
                Error(
                    code="DISPATCH_FAILED",
                    message="Outbound dispatch aborted",
                    reason=str(e),
                )
            )

    async def _deliver(self, event) -> Optional[str]:
        """Deliver one event; returns the error text on failure"""
        try:
            await self.crm_client.deliver(event)
        except ProviderError as e:
            return str(e)
        except Exception as e:
            logger.exception(f"Unexpected error delivering outbound event {event.id}")
            return f"{type(e).__name__}: {e}"
        return None

    async def _record_write_error(
        self, event_id: int, attempt: int, exc: Exception, now, result: DispatchResultDTO
    ) -> None:
        """
        Saving the outcome failed and its savepoint was rolled back

        The attempt is still counted as a failure so the event keeps moving
        toward max_attempts; if even that write fails, the event is left for
        the next run and the rest of the batch carries on.
        """
        logger.error(f"Could not save outcome of outbound event {event_id}: {exc}")
        try:
            async with self.uow.savepoint():
                await self._record_failure(
                    event_id, attempt, f"{type(exc).__name__}: {exc}", now, result
                )
        except Exception as e:
            result.errored += 1
            logger.error(f"Skipping outbound event {event_id}, state could not be written: {e}")

    async def _record_failure(
        self, event_id: int, attempt: int, error: str, now, result: DispatchResultDTO
    ) -> None:
        if attempt >= self.max_attempts:
            status = OutboundEventStatus.FAILED
            next_attempt_at = now
        else:
            status = OutboundEventStatus.PENDING
            delay = compute_backoff_seconds(attempt, self.base_backoff_seconds, self.max_backoff_seconds)
            next_attempt_at = now + timedelta(seconds=delay)

        await self.outbound_repo.record_failure(
            event_id,
            attempt_count=attempt,
            status=status,
            next_attempt_at=next_attempt_at,
            error=error[:1000],
            now=now,
        )

        if status == OutboundEventStatus.FAILED:
            result.failed += 1
            logger.error(f"Outbound event {event_id} failed permanently after {attempt} attempts: {error}")
        else:
            result.retried += 1
            logger.warning(
                f"Outbound event {event_id} attempt {attempt} failed, retrying in "
                f"{int((next_attempt_at - now).total_seconds())}s: {error}"
            )
