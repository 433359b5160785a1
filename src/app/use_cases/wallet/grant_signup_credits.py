"""GrantSignupCredits Use Case

Free credits for a newly registered user, granted once per user.
"""

import logging
from libs.result import Result, Return, Error
from src.app.repositories.ledger_repository import LedgerRepository
from src.app.services.unit_of_work import UnitOfWork
from src.domain.ledger_entry import LedgerEntryKind
from .dtos import SignupGrantResponseDTO

logger = logging.getLogger(__name__)

SIGNUP_GRANT_KEY = "signup_grant"


class GrantSignupCredits:
    """
    Use Case: Signup credit grant

    The fixed ledger key makes repeated calls for the same user a no-op,
    so the auth service can call it on every signup callback retry.
    """

    def __init__(self, uow: UnitOfWork, ledger_repo: LedgerRepository, credits: int = 2):
        self.uow = uow
        self.ledger_repo = ledger_repo
        self.credits = credits

    async def execute(self, user_id: str) -> Result[SignupGrantResponseDTO]:
        if self.credits <= 0:
            return Return.err(
                Error(code="VALIDATION_ERROR", message="Signup grant must be a positive amount")
            )

        try:
            applied = await self.ledger_repo.apply_entry(
                account_id=user_id,
                delta=self.credits,
                kind=LedgerEntryKind.GRANT_SIGNUP,
                reference=user_id,
                idempotency_key=SIGNUP_GRANT_KEY,
            )
            balance = await self.ledger_repo.get_balance(user_id)
            await self.uow.commit()

            if applied.inserted:
                logger.info(f"Granted {self.credits} signup credits to {user_id}")

            return Return.ok(
                SignupGrantResponseDTO(
                    user_id=user_id,
                    granted=applied.inserted,
                    credits=applied.record.delta,
                    balance=balance,
                )
            )
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="SIGNUP_GRANT_FAILED",
                    message="Failed to grant signup credits",
                    reason=str(e),
                )
            )
