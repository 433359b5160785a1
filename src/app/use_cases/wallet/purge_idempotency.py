"""PurgeExpiredIdempotency Use Case

Deletes idempotency records past their TTL.
"""

import logging
from libs.result import Result, Return, Error
from src.app.repositories.idempotency_repository import IdempotencyRepository
from src.app.services.clock import Clock
from src.app.services.unit_of_work import UnitOfWork
from .dtos import PurgeResultDTO

logger = logging.getLogger(__name__)


class PurgeExpiredIdempotency:
    def __init__(self, uow: UnitOfWork, idempotency_repo: IdempotencyRepository, clock: Clock):
        self.uow = uow
        self.idempotency_repo = idempotency_repo
        self.clock = clock

    async def execute(self) -> Result[PurgeResultDTO]:
        try:
            purged = await self.idempotency_repo.purge_expired(self.clock.now())
            await self.uow.commit()
            if purged:
                logger.info(f"Purged {purged} expired idempotency records")
            return Return.ok(PurgeResultDTO(purged_count=purged))
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Idempotency purge failed: {e}")
            return Return.err(
                Error(
                    code="IDEMPOTENCY_PURGE_FAILED",
                    message="Failed to purge idempotency records",
                    reason=str(e),
                )
            )
