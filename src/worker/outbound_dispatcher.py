"""Outbound Dispatcher Background Worker

Delivers queued outbound events to the CRM.
"""

import asyncio
import logging
from typing import Optional

from config import ApplicationConfig
from src.adapter.repositories.factory import build_repositories
from src.adapter.services.clock import SystemClock
from src.adapter.services.crm_client import create_crm_client
from src.app.services.crm_client import CrmClient
from src.app.use_cases.outbound import DispatchOutboundEvents
from src.app.use_cases.outbound.dtos import DispatchResultDTO
from src.worker.base import PeriodicWorker, run_worker_cli

logger = logging.getLogger(__name__)


class OutboundDispatcherWorker(PeriodicWorker):
    name = "outbound dispatch"

    def __init__(self, crm_client: Optional[CrmClient] = None, **kwargs):
        super().__init__(**kwargs)
        self.crm_client = crm_client or create_crm_client(
            ApplicationConfig.CRM_WEBHOOK_URL,
            timeout=ApplicationConfig.CRM_TIMEOUT_SECONDS,
        )

    async def _run(self, session) -> DispatchResultDTO:
        repos = build_repositories(session)
        use_case = DispatchOutboundEvents(
            uow=repos.uow,
            outbound_repo=repos.outbound_events,
            crm_client=self.crm_client,
            clock=SystemClock(),
            batch_size=ApplicationConfig.OUTBOUND_BATCH_SIZE,
            max_attempts=ApplicationConfig.OUTBOUND_MAX_ATTEMPTS,
            base_backoff_seconds=ApplicationConfig.OUTBOUND_BASE_BACKOFF_SECONDS,
            max_backoff_seconds=ApplicationConfig.OUTBOUND_MAX_BACKOFF_SECONDS,
        )

        result = await use_case.execute()

        if result.is_err():
            logger.error(f"Outbound dispatch failed: {result.error.message} ({result.error.reason})")
            raise RuntimeError(f"Outbound dispatch failed: {result.error.message}")

        return result.value


async def main():
    await run_worker_cli(
        OutboundDispatcherWorker(),
        description="Outbound Event Dispatcher Worker",
        default_interval=ApplicationConfig.OUTBOUND_DISPATCH_INTERVAL_SECONDS,
    )


if __name__ == "__main__":
    asyncio.run(main())
