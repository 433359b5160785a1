"""Unlock API Routes

Tenant contact unlocks and owner responses.
"""

from fastapi import APIRouter, Depends, status

from config import ApplicationConfig
from src.adapter.repositories.factory import build_repositories
from src.adapter.services.clock import SystemClock
from src.api.auth import AuthUser, require_idempotency_key, require_role
from src.api.error import ClientError
from src.api.schemas.unlock_request import OwnerRespondedRequestSchema, UnlockRequestSchema
from src.app.use_cases.unlocks import MarkOwnerResponded, UnlockContact
from src.app.use_cases.unlocks.dtos import (
    MarkRespondedCommandDTO,
    MarkRespondedResponseDTO,
    UnlockCommandDTO,
    UnlockResponseDTO,
)
from src.depends import get_session

router = APIRouter(tags=["Unlocks"])


@router.post(
    "/contacts/unlock",
    response_model=UnlockResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        402: {
            "description": "Insufficient credits",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "INSUFFICIENT_CREDITS",
                            "message": "Not enough credits to unlock this contact"
                        }
                    }
                }
            }
        },
        409: {"description": "Idempotency-Key reused for another listing"},
        410: {"description": "Listing missing or not active"},
    }
)
async def unlock_contact(
    request: UnlockRequestSchema,
    user: AuthUser = Depends(require_role("tenant")),
    idempotency_key: str = Depends(require_idempotency_key),
    session=Depends(get_session),
):
    """
    Spend one credit to reveal a listing owner's contact.

    Retrying with the same `Idempotency-Key` returns the same unlock and
    never debits twice. The owner has a fixed window to respond; otherwise
    the credit is refunded automatically.

    **Returns:**
    - 200: Contact unlocked (or replayed)
    - 402: No credits left
    - 409: Key already used for a different listing
    - 410: Listing not available
    """
    repos = build_repositories(session)

    use_case = UnlockContact(
        uow=repos.uow,
        ledger_repo=repos.ledger,
        unlock_repo=repos.unlocks,
        listing_repo=repos.listings,
        outbound_repo=repos.outbound_events,
        clock=SystemClock(),
        response_window_hours=ApplicationConfig.UNLOCK_RESPONSE_WINDOW_HOURS,
    )
    result = await use_case.execute(
        UnlockCommandDTO(
            tenant_id=user.user_id,
            listing_id=request.listing_id,
            idempotency_key=idempotency_key,
        )
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/owner/contact-unlocks/{unlock_id}/responded",
    response_model=MarkRespondedResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def mark_owner_responded(
    unlock_id: str,
    request: OwnerRespondedRequestSchema,
    user: AuthUser = Depends(require_role("owner")),
    session=Depends(get_session),
):
    """
    Record that the listing owner answered the tenant.

    **Returns:**
    - 200: Response recorded
    - 403: Caller does not own the listing
    - 404: Unknown unlock
    - 409: Unlock already responded or refunded
    """
    repos = build_repositories(session)

    use_case = MarkOwnerResponded(
        uow=repos.uow,
        unlock_repo=repos.unlocks,
        listing_repo=repos.listings,
        clock=SystemClock(),
    )
    result = await use_case.execute(
        MarkRespondedCommandDTO(owner_id=user.user_id, unlock_id=unlock_id, channel=request.channel)
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value
