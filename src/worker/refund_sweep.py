"""Refund Sweep Background Worker

Refunds unlocks whose owner did not respond before the deadline.
"""

import asyncio
import logging
from typing import Optional

from config import ApplicationConfig
from src.adapter.repositories.factory import build_repositories
from src.adapter.services.clock import SystemClock
from src.app.use_cases.unlocks import RefundExpiredUnlocks
from src.app.use_cases.unlocks.dtos import RefundSweepResultDTO
from src.worker.base import PeriodicWorker, run_worker_cli

logger = logging.getLogger(__name__)


class RefundSweepWorker(PeriodicWorker):
    name = "refund sweep"

    def __init__(self, batch_size: Optional[int] = None, **kwargs):
        super().__init__(**kwargs)
        self.batch_size = batch_size or ApplicationConfig.REFUND_SWEEP_BATCH_SIZE

    async def _run(self, session) -> RefundSweepResultDTO:
        repos = build_repositories(session)
        use_case = RefundExpiredUnlocks(
            uow=repos.uow,
            unlock_repo=repos.unlocks,
            ledger_repo=repos.ledger,
            outbound_repo=repos.outbound_events,
            clock=SystemClock(),
            batch_size=self.batch_size,
        )

        result = await use_case.execute()

        if result.is_err():
            logger.error(f"Refund sweep failed: {result.error.message} ({result.error.reason})")
            raise RuntimeError(f"Refund sweep failed: {result.error.message}")

        response = result.value
        if response.failed_count > 0:
            logger.error(f"ALERT: {response.failed_count} unlock refunds failed and will be retried")
        return response


async def main():
    await run_worker_cli(
        RefundSweepWorker(),
        description="Unlock Refund Sweep Worker",
        default_interval=ApplicationConfig.REFUND_SWEEP_INTERVAL_SECONDS,
    )


if __name__ == "__main__":
    asyncio.run(main())
