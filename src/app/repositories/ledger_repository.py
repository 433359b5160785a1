"""Ledger Repository Interface

Defines the Ledger Store contract: append-only entries plus the balance
projection they explain. Both the SQL and in-memory backends implement it.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
from src.app.repositories.insert_result import InsertResult
from src.domain.credit_account import CreditAccount
from src.domain.ledger_entry import LedgerEntry, LedgerEntryKind


class LedgerRepository(ABC):
    """
    Repository interface for the credit ledger

    Implementations never commit; the caller's unit of work owns the
    transaction so a ledger entry can be written atomically with the
    record it pays for.
    """

    @abstractmethod
    async def apply_entry(
        self,
        account_id: str,
        delta: int,
        kind: LedgerEntryKind,
        reference: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> InsertResult[LedgerEntry]:
        """
        Append an entry and move the balance in one atomic step

        The account row is created if missing and locked for the rest of the
        transaction, which linearizes all entries of one account.

        Args:
            account_id: Account to change
            delta: Signed, non-zero credit delta
            kind: Cause of the change
            reference: Id of the causing entity
            idempotency_key: Optional key, unique per account

        Returns:
            Inserted(entry) when applied, AlreadyExists(entry) when an entry
            with the same (account_id, idempotency_key) was already there; in
            that case the balance is left untouched

        Raises:
            InsufficientBalance: delta < 0 and balance + delta < 0
        """
        pass

    @abstractmethod
    async def get_balance(self, account_id: str) -> int:
        """
        Current balance, creating a zero-balance account on first touch

        Args:
            account_id: Account identifier

        Returns:
            Current balance
        """
        pass

    @abstractmethod
    async def get_account(self, account_id: str) -> Optional[CreditAccount]:
        pass

    @abstractmethod
    async def list_accounts(self) -> List[CreditAccount]:
        pass

    @abstractmethod
    async def list_entries(
        self, account_id: str, limit: int = 20, offset: int = 0
    ) -> Tuple[List[LedgerEntry], int]:
        """
        Page through an account's entries, newest first

        Args:
            account_id: Account identifier
            limit: Page size
            offset: Entries to skip

        Returns:
            Tuple of (entries, total entry count)
        """
        pass

    @abstractmethod
    async def get_entry_by_key(
        self, account_id: str, idempotency_key: str
    ) -> Optional[LedgerEntry]:
        pass

    @abstractmethod
    async def sum_deltas(self, account_id: str) -> int:
        """Sum of all entry deltas for an account (0 when none)"""
        pass
