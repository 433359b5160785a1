"""RefundExpiredUnlocks Use Case

Refunds the credit of every unlock whose owner did not respond before the
deadline.
"""

import logging
from datetime import datetime
from typing import Set
from libs.result import Result, Return, Error
from src.app.repositories.ledger_repository import LedgerRepository
from src.app.repositories.outbound_event_repository import OutboundEventRepository
from src.app.repositories.unlock_repository import UnlockRepository
from src.app.services.clock import Clock
from src.app.services.unit_of_work import UnitOfWork
from src.domain.ledger_entry import LedgerEntryKind
from .dtos import RefundSweepResultDTO

logger = logging.getLogger(__name__)


class _NoLongerDue(Exception):
    """The unlock left pending/active after it was claimed"""


class RefundExpiredUnlocks:
    """
    Use Case: Timeout refund sweep

    Business Rules:
    1. Only pending/active unlocks past their deadline are refunded
    2. Each unlock is refunded at most once (guarded update + keyed credit)
    3. A failing unlock does not block the others: it is rolled back to its
       savepoint and skipped for the rest of the run
    4. Concurrent sweeps never process the same unlock (SKIP LOCKED claims)

    Flow (repeated until a claim returns nothing):
    1. Claim up to batch_size due unlocks
    2. For each, in a savepoint: credit +1, mark refunded, audit, enqueue
    3. Commit the batch
    """

    def __init__(
        self,
        uow: UnitOfWork,
        unlock_repo: UnlockRepository,
        ledger_repo: LedgerRepository,
        outbound_repo: OutboundEventRepository,
        clock: Clock,
        batch_size: int = 100,
    ):
        self.uow = uow
        self.unlock_repo = unlock_repo
        self.ledger_repo = ledger_repo
        self.outbound_repo = outbound_repo
        self.clock = clock
        self.batch_size = batch_size

    async def execute(self) -> Result[RefundSweepResultDTO]:
        refunded = 0
        failed = 0
        batches = 0
        skipped: Set[str] = set()

        try:
            while True:
                now = self.clock.now()
                claimed = await self.unlock_repo.claim_due(now, self.batch_size, skipped)
                if not claimed:
                    await self.uow.rollback()
                    break

                batches += 1
                due = [(r.id, r.tenant_id, r.listing_id) for r in claimed]

                for unlock_id, tenant_id, listing_id in due:
                    try:
                        async with self.uow.savepoint():
                            await self._refund(unlock_id, tenant_id, listing_id, now)
                        refunded += 1
                    except _NoLongerDue:
                        skipped.add(unlock_id)
                        logger.info(f"Unlock {unlock_id} is no longer due, skipping refund")
                    except Exception as e:
                        failed += 1
                        skipped.add(unlock_id)
                        logger.error(f"Refund failed for unlock {unlock_id}: {e}")

                await self.uow.commit()

            if refunded or failed:
                logger.info(
                    f"Refund sweep complete: refunded={refunded}, failed={failed}, batches={batches}"
                )

            return Return.ok(
                RefundSweepResultDTO(refunded_count=refunded, failed_count=failed, batches=batches)
            )

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Refund sweep aborted: {e}")
            return Return.err(
                Error(
                    code="REFUND_SWEEP_FAILED",
                    message="Refund sweep aborted",
                    reason=str(e),
                )
            )

    async def _refund(self, unlock_id: str, tenant_id: str, listing_id: str, now: datetime) -> None:
        credit = await self.ledger_repo.apply_entry(
            account_id=tenant_id,
            delta=1,
            kind=LedgerEntryKind.REFUND_TIMEOUT,
            reference=unlock_id,
            idempotency_key=f"refund:{unlock_id}",
        )
        refund_entry_id = credit.record.id

        if not await self.unlock_repo.mark_refunded(unlock_id, refund_entry_id, now):
            raise _NoLongerDue(unlock_id)

        await self.unlock_repo.add_event(
            unlock_id,
            actor_role="system",
            event_type="refund_issued",
            metadata={"refund_entry_id": refund_entry_id},
        )
        await self.outbound_repo.enqueue(
            event_type="crm.contact_unlock.refunded",
            aggregate_type="contact_unlock",
            aggregate_id=unlock_id,
            dedupe_key=f"contact_unlock_refunded:{unlock_id}",
            payload={
                "unlock_id": unlock_id,
                "tenant_id": tenant_id,
                "listing_id": listing_id,
                "refund_entry_id": refund_entry_id,
                "refunded_at": now.isoformat(),
            },
            now=now,
        )
