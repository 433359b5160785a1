"""Internal API Routes

Called by other backend services, not by end users.
"""

from fastapi import APIRouter, Depends, status

from config import ApplicationConfig
from src.adapter.repositories.factory import build_repositories
from src.adapter.services.clock import SystemClock
from src.api.auth import AuthUser, require_role
from src.api.error import ClientError
from src.api.schemas.wallet_request import OutboundEventRequestSchema
from src.app.use_cases.outbound import EnqueueOutboundEvent
from src.app.use_cases.outbound.dtos import (
    EnqueueOutboundEventCommandDTO,
    EnqueueOutboundEventResponseDTO,
)
from src.app.use_cases.wallet import GrantSignupCredits
from src.app.use_cases.wallet.dtos import SignupGrantResponseDTO
from src.depends import get_session

router = APIRouter(prefix="/internal", tags=["Internal"])


@router.post(
    "/outbound-events",
    response_model=EnqueueOutboundEventResponseDTO,
    status_code=status.HTTP_202_ACCEPTED,
)
async def enqueue_outbound_event(
    request: OutboundEventRequestSchema,
    user: AuthUser = Depends(require_role("admin", "service")),
    session=Depends(get_session),
):
    """Queue an event for delivery to the CRM; repeats of a dedupe_key are no-ops"""
    repos = build_repositories(session)

    use_case = EnqueueOutboundEvent(repos.uow, repos.outbound_events, SystemClock())
    result = await use_case.execute(EnqueueOutboundEventCommandDTO(**request.model_dump()))

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/users/{user_id}/signup-grant",
    response_model=SignupGrantResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def grant_signup_credits(
    user_id: str,
    user: AuthUser = Depends(require_role("admin", "service")),
    session=Depends(get_session),
):
    """Grant the one-time signup credits; safe to call repeatedly"""
    repos = build_repositories(session)

    use_case = GrantSignupCredits(repos.uow, repos.ledger, credits=ApplicationConfig.SIGNUP_GRANT_CREDITS)
    result = await use_case.execute(user_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value
