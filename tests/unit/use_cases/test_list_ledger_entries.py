"""Unit tests for ListLedgerEntries use case"""

import pytest
from datetime import datetime
from unittest.mock import AsyncMock

from src.app.use_cases.wallet.list_ledger_entries import ListLedgerEntries
from src.domain.ledger_entry import LedgerEntry, LedgerEntryKind


@pytest.fixture
def mock_ledger_repo():
    return AsyncMock()


@pytest.fixture
def use_case(mock_ledger_repo):
    return ListLedgerEntries(ledger_repo=mock_ledger_repo)


def _entry(entry_id, delta, kind, balance_after):
    return LedgerEntry(
        id=entry_id,
        account_id="user_1",
        delta=delta,
        kind=kind,
        reference="listing_7",
        balance_after=balance_after,
        created_at=datetime(2024, 1, 1, 12, entry_id),
    )


@pytest.mark.asyncio
class TestListLedgerEntries:

    async def test_returns_page_with_total(self, use_case, mock_ledger_repo):
        """
        Given: An account with three entries
        When: The first page of two is requested
        Then: Two entries newest first and total=3
        """
        mock_ledger_repo.list_entries.return_value = (
            [
                _entry(3, -1, LedgerEntryKind.DEBIT_UNLOCK, 1),
                _entry(2, -1, LedgerEntryKind.DEBIT_UNLOCK, 2),
            ],
            3,
        )

        result = await use_case.execute("user_1", limit=2, offset=0)

        assert result.is_ok()
        page = result.value
        assert page.total == 3
        assert page.limit == 2
        assert [e.id for e in page.entries] == [3, 2]
        assert page.entries[0].kind == "debit_unlock"
        mock_ledger_repo.list_entries.assert_called_once_with(account_id="user_1", limit=2, offset=0)

    async def test_empty_history(self, use_case, mock_ledger_repo):
        mock_ledger_repo.list_entries.return_value = ([], 0)

        result = await use_case.execute("user_1")

        assert result.is_ok()
        assert result.value.entries == []
        assert result.value.total == 0

    @pytest.mark.parametrize("limit,offset", [(0, 0), (101, 0), (10, -1)])
    async def test_rejects_out_of_range_paging(self, use_case, mock_ledger_repo, limit, offset):
        result = await use_case.execute("user_1", limit=limit, offset=offset)

        assert result.is_err()
        assert result.error.code == "VALIDATION_ERROR"
        mock_ledger_repo.list_entries.assert_not_called()
