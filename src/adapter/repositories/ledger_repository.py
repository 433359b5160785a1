"""SQLAlchemy implementation of LedgerRepository

Provides the durable Ledger Store with pessimistic locking on the account
row and idempotent entry insertion backed by a unique constraint.
"""

from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.repositories._dialect import upsert_insert
from src.app.repositories.insert_result import AlreadyExists, Inserted, InsertResult
from src.app.repositories.ledger_repository import LedgerRepository
from src.domain.credit_account import CreditAccount
from src.domain.exceptions import InsufficientBalance
from src.domain.ledger_entry import LedgerEntry, LedgerEntryKind


class SqlAlchemyLedgerRepository(LedgerRepository):
    """
    SQLAlchemy implementation of LedgerRepository

    Features:
    - Account row created with INSERT ... ON CONFLICT DO NOTHING
    - Pessimistic locking via SELECT FOR UPDATE on the account
    - Entry insert-or-fetch on (account_id, idempotency_key)
    - Balance check and balance update under the same lock
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _ensure_account(self, account_id: str, for_update: bool = False) -> CreditAccount:
        now = datetime.utcnow()
        await self.session.execute(
            upsert_insert(self.session, CreditAccount)
            .values(account_id=account_id, balance=0, created_at=now, updated_at=now)
            .on_conflict_do_nothing(index_elements=["account_id"])
        )

        stmt = (
            select(CreditAccount)
            .where(CreditAccount.account_id == account_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def apply_entry(
        self,
        account_id: str,
        delta: int,
        kind: LedgerEntryKind,
        reference: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> InsertResult[LedgerEntry]:
        """
        Apply a signed delta to an account

        Must be called inside a unit of work; the account lock is held until
        the caller commits or rolls back.
        """
        if delta == 0:
            raise ValueError("Ledger entry delta must be non-zero")

        account = await self._ensure_account(account_id, for_update=True)

        # Replays are answered before the balance check so a retried debit
        # never fails with InsufficientBalance.
        if idempotency_key is not None:
            existing = await self.get_entry_by_key(account_id, idempotency_key)
            if existing:
                return AlreadyExists(existing)

        new_balance = account.balance + delta
        if delta < 0 and new_balance < 0:
            raise InsufficientBalance(account_id, account.balance, delta)

        now = datetime.utcnow()
        result = await self.session.execute(
            upsert_insert(self.session, LedgerEntry)
            .values(
                account_id=account_id,
                delta=delta,
                kind=kind,
                reference=reference,
                idempotency_key=idempotency_key,
                balance_after=new_balance,
                created_at=now,
            )
            .on_conflict_do_nothing(index_elements=["account_id", "idempotency_key"])
            .returning(LedgerEntry.id)
        )
        entry_id = result.scalar_one_or_none()

        if entry_id is None:
            existing = await self.get_entry_by_key(account_id, idempotency_key)
            return AlreadyExists(existing)

        account.balance = new_balance
        account.updated_at = now
        self.session.add(account)
        await self.session.flush()

        entry = await self.session.get(LedgerEntry, entry_id)
        return Inserted(entry)

    async def get_balance(self, account_id: str) -> int:
        account = await self._ensure_account(account_id)
        return account.balance

    async def get_account(self, account_id: str) -> Optional[CreditAccount]:
        stmt = select(CreditAccount).where(CreditAccount.account_id == account_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_accounts(self) -> List[CreditAccount]:
        stmt = select(CreditAccount).order_by(CreditAccount.account_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_entries(
        self, account_id: str, limit: int = 20, offset: int = 0
    ) -> Tuple[List[LedgerEntry], int]:
        """
        Retrieve entries newest first with the total count

        Args:
            account_id: Account identifier
            limit: Maximum number of entries to return
            offset: Number of entries to skip

        Returns:
            Tuple of (entries, total_count)
        """
        count_stmt = (
            select(func.count())
            .select_from(LedgerEntry)
            .where(LedgerEntry.account_id == account_id)
        )
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.account_id == account_id)
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def get_entry_by_key(
        self, account_id: str, idempotency_key: str
    ) -> Optional[LedgerEntry]:
        stmt = select(LedgerEntry).where(
            LedgerEntry.account_id == account_id,
            LedgerEntry.idempotency_key == idempotency_key,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def sum_deltas(self, account_id: str) -> int:
        stmt = select(func.coalesce(func.sum(LedgerEntry.delta), 0)).where(
            LedgerEntry.account_id == account_id
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())
