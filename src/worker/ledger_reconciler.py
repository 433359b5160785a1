"""Ledger Reconciliation Background Worker

Periodically checks account balances against their ledger entries.
Can be run as a standalone script or integrated with a scheduler.
"""

import asyncio
import logging
from datetime import datetime

from config import ApplicationConfig
from src.adapter.repositories.factory import build_repositories
from src.app.use_cases.wallet import ReconcileLedger
from src.app.use_cases.wallet.dtos import ReconciliationResultDTO
from src.worker.base import PeriodicWorker, run_worker_cli

logger = logging.getLogger(__name__)


class LedgerReconcilerWorker(PeriodicWorker):
    """
    Background worker for ledger reconciliation

    Features:
    - Compares account balances against entry sums
    - Logs discrepancies for investigation
    - Can run once or continuously
    - Configurable interval (default: daily)
    """

    name = "ledger reconciliation"

    async def run_once(self) -> ReconciliationResultDTO:
        if not ApplicationConfig.RECONCILIATION_ENABLED:
            logger.info("Ledger reconciliation is disabled, skipping")
            return ReconciliationResultDTO(
                total_accounts_checked=0,
                discrepancies_found=0,
                discrepancies=[],
                reconciliation_time=datetime.utcnow(),
                execution_time_ms=0,
            )
        return await super().run_once()

    async def _run(self, session) -> ReconciliationResultDTO:
        repos = build_repositories(session)
        use_case = ReconcileLedger(uow=repos.uow, ledger_repo=repos.ledger)

        result = await use_case.execute()

        if result.is_err():
            logger.error(f"Reconciliation failed: {result.error.message}")
            raise RuntimeError(f"Reconciliation failed: {result.error.message}")

        response = result.value

        if response.discrepancies_found > 0:
            logger.error(
                f"ALERT: {response.discrepancies_found} ledger discrepancies found!"
            )
            for d in response.discrepancies:
                logger.error(
                    f"  - Account {d.account_id}: "
                    f"expected={d.calculated_balance}, actual={d.ledger_balance}, "
                    f"diff={d.discrepancy}"
                )

        return response


async def main():
    await run_worker_cli(
        LedgerReconcilerWorker(),
        description="Ledger Reconciliation Worker",
        default_interval=ApplicationConfig.RECONCILIATION_INTERVAL_SECONDS,
    )


if __name__ == "__main__":
    asyncio.run(main())
