"""
List Ledger Entries Use Case

Retrieves an account's ledger history with pagination.
"""
from libs.result import Result, Return, Error
from src.app.repositories.ledger_repository import LedgerRepository
from .dtos import LedgerEntryDTO, ListLedgerEntriesResponseDTO

MAX_PAGE_SIZE = 100


class ListLedgerEntries:
    """
    Use case: View ledger history

    Entries are ordered newest first; limit/offset pages through them.
    """

    def __init__(self, ledger_repo: LedgerRepository):
        self.ledger_repo = ledger_repo

    async def execute(
        self, user_id: str, limit: int = 20, offset: int = 0
    ) -> Result[ListLedgerEntriesResponseDTO]:
        """
        List entries for an account with pagination.

        Args:
            user_id: Account owner
            limit: Maximum number of entries to return (1-100, default 20)
            offset: Number of entries to skip (default 0)

        Returns:
            Result[ListLedgerEntriesResponseDTO]: Paginated entry list
        """
        if limit < 1 or limit > MAX_PAGE_SIZE or offset < 0:
            return Return.err(
                Error(
                    code="VALIDATION_ERROR",
                    message=f"limit must be between 1 and {MAX_PAGE_SIZE} and offset must be >= 0",
                )
            )

        entries, total = await self.ledger_repo.list_entries(
            account_id=user_id,
            limit=limit,
            offset=offset,
        )

        entry_dtos = [
            LedgerEntryDTO(
                id=entry.id,
                delta=entry.delta,
                kind=entry.kind.value,
                reference=entry.reference,
                balance_after=entry.balance_after,
                created_at=entry.created_at,
            )
            for entry in entries
        ]

        return Return.ok(
            ListLedgerEntriesResponseDTO(
                entries=entry_dtos,
                total=total,
                limit=limit,
                offset=offset,
            )
        )
