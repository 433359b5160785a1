"""AdjustBalance Use Case

Manual admin correction of a user's balance, recorded as an admin_adjust
ledger entry.
"""

import logging
from datetime import timedelta
from libs.result import Result, Return, Error
from src.app.repositories.idempotency_repository import IdempotencyRepository
from src.app.repositories.ledger_repository import LedgerRepository
from src.app.services.clock import Clock
from src.app.services.unit_of_work import UnitOfWork
from src.domain.exceptions import InsufficientBalance
from src.domain.ledger_entry import LedgerEntryKind
from .dtos import AdjustBalanceCommandDTO, AdjustBalanceResponseDTO

logger = logging.getLogger(__name__)

ADJUST_ROUTE = "POST /admin/wallet/adjust"


class AdjustBalance:
    """
    Use Case: Admin balance adjustment

    Business Rules:
    1. credits_delta is non-zero and a reason is given
    2. A retry with the same Idempotency-Key returns the stored response
    3. Negative adjustments cannot overdraw the account
    4. Ledger entry and stored response are committed together

    Flow:
    1. Validate command
    2. Return cached response if the key was already used by this admin
    3. Apply admin_adjust entry (reference = admin id)
    4. Store response in the idempotency index
    5. Commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        ledger_repo: LedgerRepository,
        idempotency_repo: IdempotencyRepository,
        clock: Clock,
        idempotency_ttl_seconds: int = 86400,
    ):
        self.uow = uow
        self.ledger_repo = ledger_repo
        self.idempotency_repo = idempotency_repo
        self.clock = clock
        self.idempotency_ttl_seconds = idempotency_ttl_seconds

    async def execute(self, command: AdjustBalanceCommandDTO) -> Result[AdjustBalanceResponseDTO]:
        if command.credits_delta == 0:
            return Return.err(
                Error(code="VALIDATION_ERROR", message="credits_delta must be non-zero")
            )
        if not command.reason.strip():
            return Return.err(
                Error(code="VALIDATION_ERROR", message="reason is required")
            )

        try:
            now = self.clock.now()

            cached = await self.idempotency_repo.get(
                command.admin_id, ADJUST_ROUTE, command.idempotency_key, now
            )
            if cached:
                return Return.ok(AdjustBalanceResponseDTO.model_validate(cached))

            applied = await self.ledger_repo.apply_entry(
                account_id=command.user_id,
                delta=command.credits_delta,
                kind=LedgerEntryKind.ADMIN_ADJUST,
                reference=command.admin_id,
                idempotency_key=f"admin_adjust:{command.admin_id}:{command.idempotency_key}",
            )
            entry = applied.record

            response = AdjustBalanceResponseDTO(
                entry_id=entry.id,
                user_id=command.user_id,
                credits_delta=entry.delta,
                balance=entry.balance_after,
                reason=command.reason.strip(),
            )

            await self.idempotency_repo.put(
                command.admin_id,
                ADJUST_ROUTE,
                command.idempotency_key,
                response.model_dump(mode="json"),
                expires_at=now + timedelta(seconds=self.idempotency_ttl_seconds),
                now=now,
            )
            await self.uow.commit()

            logger.info(
                f"Admin {command.admin_id} adjusted {command.user_id} by {command.credits_delta} "
                f"(entry={entry.id}, reason={response.reason!r})"
            )
            return Return.ok(response)

        except InsufficientBalance as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="INSUFFICIENT_CREDITS",
                    message="Adjustment would make the balance negative",
                    reason=str(e),
                )
            )
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="ADJUST_BALANCE_FAILED",
                    message="Failed to adjust balance",
                    reason=str(e),
                )
            )
