"""ReconcileLedger Use Case

Checks every account balance against the sum of its ledger entries.
"""

import logging
import time
from datetime import datetime
from libs.result import Result, Return, Error
from src.app.repositories.ledger_repository import LedgerRepository
from src.app.services.unit_of_work import UnitOfWork
from .dtos import LedgerDiscrepancyDTO, ReconciliationResultDTO

logger = logging.getLogger(__name__)


class ReconcileLedger:
    """
    Use Case: Reconcile account balances against ledger entries

    Business Rules:
    1. For every account, balance must equal sum(delta) of its entries
    2. Mismatches are reported and logged, never corrected automatically
    3. Read-only: no data is modified

    Flow:
    1. Get all accounts
    2. For each account:
       a. Sum its entry deltas
       b. Compare with the stored balance
       c. If mismatch, record discrepancy
    3. Return reconciliation result with all discrepancies
    """

    def __init__(self, uow: UnitOfWork, ledger_repo: LedgerRepository):
        self.uow = uow
        self.ledger_repo = ledger_repo

    async def execute(self) -> Result[ReconciliationResultDTO]:
        """
        Execute ledger reconciliation

        Returns:
            Result[ReconciliationResultDTO]: Reconciliation result with any discrepancies
        """
        start_time = time.time()
        reconciliation_time = datetime.utcnow()

        try:
            logger.info("Starting credit ledger reconciliation")

            accounts = await self.ledger_repo.list_accounts()
            total_accounts = len(accounts)

            logger.info(f"Found {total_accounts} accounts to reconcile")

            discrepancies: list[LedgerDiscrepancyDTO] = []

            for account in accounts:
                calculated = await self.ledger_repo.sum_deltas(account.account_id)

                if account.balance != calculated:
                    discrepancy = LedgerDiscrepancyDTO(
                        account_id=account.account_id,
                        ledger_balance=account.balance,
                        calculated_balance=calculated,
                        discrepancy=account.balance - calculated,
                    )
                    discrepancies.append(discrepancy)

                    logger.warning(
                        f"Discrepancy found for account {account.account_id}: "
                        f"balance={account.balance}, "
                        f"entry_sum={calculated}, "
                        f"discrepancy={discrepancy.discrepancy}"
                    )

            # Nothing was written; release any read locks.
            await self.uow.rollback()

            execution_time_ms = int((time.time() - start_time) * 1000)

            response = ReconciliationResultDTO(
                total_accounts_checked=total_accounts,
                discrepancies_found=len(discrepancies),
                discrepancies=discrepancies,
                reconciliation_time=reconciliation_time,
                execution_time_ms=execution_time_ms,
            )

            if discrepancies:
                logger.warning(
                    f"Reconciliation complete. Found {len(discrepancies)} discrepancies "
                    f"out of {total_accounts} accounts in {execution_time_ms}ms"
                )
            else:
                logger.info(
                    f"Reconciliation complete. All {total_accounts} accounts balanced "
                    f"in {execution_time_ms}ms"
                )

            return Return.ok(response)

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Ledger reconciliation failed: {e}")
            return Return.err(
                Error(
                    code="RECONCILIATION_FAILED",
                    message="Failed to reconcile credit ledger",
                    reason=str(e),
                )
            )
