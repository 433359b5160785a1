"""Idempotency Purge Background Worker

Deletes expired idempotency records.
"""

import asyncio
import logging

from config import ApplicationConfig
from src.adapter.repositories.factory import build_repositories
from src.adapter.services.clock import SystemClock
from src.app.use_cases.wallet import PurgeExpiredIdempotency
from src.app.use_cases.wallet.dtos import PurgeResultDTO
from src.worker.base import PeriodicWorker, run_worker_cli

logger = logging.getLogger(__name__)


class IdempotencyPurgeWorker(PeriodicWorker):
    name = "idempotency purge"

    async def _run(self, session) -> PurgeResultDTO:
        repos = build_repositories(session)
        use_case = PurgeExpiredIdempotency(
            uow=repos.uow,
            idempotency_repo=repos.idempotency,
            clock=SystemClock(),
        )

        result = await use_case.execute()

        if result.is_err():
            raise RuntimeError(f"Idempotency purge failed: {result.error.message}")

        return result.value


async def main():
    await run_worker_cli(
        IdempotencyPurgeWorker(),
        description="Idempotency Record Purge Worker",
        default_interval=ApplicationConfig.IDEMPOTENCY_PURGE_INTERVAL_SECONDS,
    )


if __name__ == "__main__":
    asyncio.run(main())
