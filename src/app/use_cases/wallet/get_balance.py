"""Get Balance Use Case

Retrieves a user's current credit balance.
"""

from libs.result import Result, Return, Error
from src.app.repositories.ledger_repository import LedgerRepository
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.wallet.dtos import BalanceResponseDTO


class GetBalance:
    """
    Get Balance Use Case

    Accounts are created lazily: a user who never had an entry reads a
    zero balance, and the zero-balance account is persisted.
    """

    def __init__(self, uow: UnitOfWork, ledger_repo: LedgerRepository):
        """
        Initialize GetBalance use case

        Args:
            uow: Unit of work persisting a lazily created account
            ledger_repo: Repository for accessing the ledger
        """
        self.uow = uow
        self.ledger_repo = ledger_repo

    async def execute(self, user_id: str) -> Result[BalanceResponseDTO]:
        """
        Execute get balance operation

        Args:
            user_id: The account owner

        Returns:
            Result[BalanceResponseDTO]: Success with balance data or error
        """
        try:
            balance = await self.ledger_repo.get_balance(user_id)
            account = await self.ledger_repo.get_account(user_id)
            await self.uow.commit()

            return Return.ok(
                BalanceResponseDTO(
                    user_id=user_id,
                    balance=balance,
                    last_updated=account.updated_at,
                )
            )
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="GET_BALANCE_FAILED",
                    message="Failed to read balance",
                    reason=str(e),
                )
            )
