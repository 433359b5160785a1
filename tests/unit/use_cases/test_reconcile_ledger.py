"""Unit tests for ReconcileLedger use case

Tests cover:
- Balance vs entry-sum comparison per account
- Discrepancy sign and reporting
- Empty system
- Error handling
"""

import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.wallet.reconcile_ledger import ReconcileLedger
from src.domain.credit_account import CreditAccount


@pytest.fixture
def mock_ledger_repo():
    """Mock ledger repository"""
    return MagicMock()


@pytest.fixture
def reconcile_use_case(mock_uow, mock_ledger_repo):
    """ReconcileLedger use case instance with mocked dependencies"""
    return ReconcileLedger(uow=mock_uow, ledger_repo=mock_ledger_repo)


@pytest.fixture
def sample_account():
    """Factory for account mocks"""
    def _create_account(account_id: str, balance: int):
        account = MagicMock(spec=CreditAccount)
        account.account_id = account_id
        account.balance = balance
        return account
    return _create_account


@pytest.mark.asyncio
class TestReconcileLedgerCheck:

    async def test_detects_discrepancy_when_balance_differs(
        self, reconcile_use_case, mock_ledger_repo, sample_account
    ):
        """
        Given: Account balance differs from the sum of its entry deltas
        When: Reconciliation runs
        Then: The discrepancy is reported with balance - sum
        """
        # Arrange
        mock_ledger_repo.list_accounts = AsyncMock(return_value=[sample_account("user_1", 10)])
        mock_ledger_repo.sum_deltas = AsyncMock(return_value=8)

        # Act
        result = await reconcile_use_case.execute()

        # Assert
        assert result.is_ok()
        response = result.value
        assert response.total_accounts_checked == 1
        assert response.discrepancies_found == 1

        discrepancy = response.discrepancies[0]
        assert discrepancy.account_id == "user_1"
        assert discrepancy.ledger_balance == 10
        assert discrepancy.calculated_balance == 8
        assert discrepancy.discrepancy == 2

    async def test_reconciles_multiple_accounts(
        self, reconcile_use_case, mock_uow, mock_ledger_repo, sample_account
    ):
        """
        Given: Three accounts, one of them missing credits
        When: Reconciliation runs
        Then: Only the mismatched account is reported and nothing is committed
        """
        mock_ledger_repo.list_accounts = AsyncMock(
            return_value=[
                sample_account("user_1", 2),
                sample_account("user_2", 0),
                sample_account("user_3", 11),
            ]
        )
        sums = {"user_1": 2, "user_2": 1, "user_3": 11}
        mock_ledger_repo.sum_deltas = AsyncMock(side_effect=lambda account_id: sums[account_id])

        result = await reconcile_use_case.execute()

        assert result.is_ok()
        response = result.value
        assert response.total_accounts_checked == 3
        assert response.discrepancies_found == 1
        assert response.discrepancies[0].account_id == "user_2"
        assert response.discrepancies[0].discrepancy == -1
        mock_uow.commit.assert_not_called()

    async def test_handles_no_accounts(self, reconcile_use_case, mock_ledger_repo):
        mock_ledger_repo.list_accounts = AsyncMock(return_value=[])

        result = await reconcile_use_case.execute()

        assert result.is_ok()
        assert result.value.total_accounts_checked == 0
        assert result.value.discrepancies == []
        assert result.value.execution_time_ms >= 0

    async def test_includes_reconciliation_timestamp(self, reconcile_use_case, mock_ledger_repo, sample_account):
        mock_ledger_repo.list_accounts = AsyncMock(return_value=[sample_account("user_1", 3)])
        mock_ledger_repo.sum_deltas = AsyncMock(return_value=3)

        result = await reconcile_use_case.execute()

        assert abs((result.value.reconciliation_time - datetime.utcnow()).total_seconds()) < 5


@pytest.mark.asyncio
class TestReconcileLedgerErrorHandling:

    async def test_returns_error_on_repository_failure(self, reconcile_use_case, mock_uow, mock_ledger_repo):
        """
        Given: Ledger repository throws exception
        When: Reconciliation runs
        Then: RECONCILIATION_FAILED with the underlying reason
        """
        mock_ledger_repo.list_accounts = AsyncMock(side_effect=Exception("Database connection failed"))

        result = await reconcile_use_case.execute()

        assert result.is_err()
        assert result.error.code == "RECONCILIATION_FAILED"
        assert "Database connection failed" in result.error.reason
        mock_uow.rollback.assert_called()
