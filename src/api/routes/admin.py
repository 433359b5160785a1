"""Admin API Routes"""

from fastapi import APIRouter, Depends, status

from config import ApplicationConfig
from src.adapter.repositories.factory import build_repositories
from src.adapter.services.clock import SystemClock
from src.api.auth import AuthUser, require_idempotency_key, require_role
from src.api.error import ClientError
from src.api.schemas.wallet_request import AdjustBalanceRequestSchema
from src.app.use_cases.wallet import AdjustBalance
from src.app.use_cases.wallet.dtos import AdjustBalanceCommandDTO, AdjustBalanceResponseDTO
from src.depends import get_session

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post(
    "/wallet/adjust",
    response_model=AdjustBalanceResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def adjust_wallet(
    request: AdjustBalanceRequestSchema,
    user: AuthUser = Depends(require_role("admin")),
    idempotency_key: str = Depends(require_idempotency_key),
    session=Depends(get_session),
):
    """
    Manually credit or debit a user's wallet.

    **Request body:**
    - `user_id` (required): Account to adjust
    - `credits_delta` (required): Signed, non-zero
    - `reason` (required): Audit justification

    **Returns:**
    - 200: Adjustment applied (or replayed)
    - 402: Debit would make the balance negative
    """
    repos = build_repositories(session)

    use_case = AdjustBalance(
        uow=repos.uow,
        ledger_repo=repos.ledger,
        idempotency_repo=repos.idempotency,
        clock=SystemClock(),
        idempotency_ttl_seconds=ApplicationConfig.IDEMPOTENCY_TTL_SECONDS,
    )
    result = await use_case.execute(
        AdjustBalanceCommandDTO(
            admin_id=user.user_id,
            user_id=request.user_id,
            credits_delta=request.credits_delta,
            reason=request.reason,
            idempotency_key=idempotency_key,
        )
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value
