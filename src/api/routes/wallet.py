"""Wallet API Routes

Balance, ledger history and credit purchases for the calling user.
"""

from fastapi import APIRouter, Depends, Query, status

from config import ApplicationConfig
from src.adapter.repositories.factory import build_repositories
from src.adapter.services.clock import SystemClock
from src.api.auth import AuthUser, get_current_user, require_idempotency_key
from src.api.error import ClientError
from src.api.schemas.wallet_request import PurchaseIntentRequestSchema
from src.app.use_cases.payments import CreatePurchaseIntent
from src.app.use_cases.payments.dtos import PurchaseIntentCommandDTO, PurchaseIntentResponseDTO
from src.app.use_cases.wallet import GetBalance, ListLedgerEntries
from src.app.use_cases.wallet.dtos import BalanceResponseDTO, ListLedgerEntriesResponseDTO
from src.depends import get_session

router = APIRouter(prefix="/wallet", tags=["Wallet"])


@router.get(
    "",
    response_model=BalanceResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def get_balance(
    user: AuthUser = Depends(get_current_user),
    session=Depends(get_session),
):
    """
    Get the caller's current credit balance.

    **Example response:**
    ```json
    {
      "user_id": "user_tenant_42",
      "balance": 2,
      "last_updated": "2024-01-01T00:00:00Z"
    }
    ```
    """
    repos = build_repositories(session)

    result = await GetBalance(repos.uow, repos.ledger).execute(user.user_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get(
    "/transactions",
    response_model=ListLedgerEntriesResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def list_transactions(
    limit: int = Query(default=20, ge=1, le=100, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Entries to skip"),
    user: AuthUser = Depends(get_current_user),
    session=Depends(get_session),
):
    """
    Page through the caller's ledger entries, newest first.

    **Query parameters:**
    - `limit` (optional): 1-100, default 20
    - `offset` (optional): default 0
    """
    repos = build_repositories(session)

    result = await ListLedgerEntries(repos.ledger).execute(user.user_id, limit=limit, offset=offset)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/purchase-intents",
    response_model=PurchaseIntentResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def create_purchase_intent(
    request: PurchaseIntentRequestSchema,
    user: AuthUser = Depends(get_current_user),
    idempotency_key: str = Depends(require_idempotency_key),
    session=Depends(get_session),
):
    """
    Create a provider order for a credit plan.

    Credits are granted when the provider's capture webhook arrives.

    **Returns:**
    - 200: Order created (or replayed for the same Idempotency-Key)
    - 400: Unknown plan or provider
    """
    repos = build_repositories(session)

    use_case = CreatePurchaseIntent(
        uow=repos.uow,
        order_repo=repos.orders,
        idempotency_repo=repos.idempotency,
        clock=SystemClock(),
        provider_key=ApplicationConfig.PAYMENT_PROVIDER_KEY,
        idempotency_ttl_seconds=ApplicationConfig.IDEMPOTENCY_TTL_SECONDS,
    )
    result = await use_case.execute(
        PurchaseIntentCommandDTO(
            user_id=user.user_id,
            plan_id=request.plan_id,
            provider=request.provider,
            idempotency_key=idempotency_key,
        )
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value
