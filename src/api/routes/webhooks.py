"""Payment Webhook Routes

Unauthenticated endpoints; requests are authenticated by their HMAC
signature instead.
"""

import json
import logging
from fastapi import APIRouter, Depends, Request, status

from config import ApplicationConfig
from libs.result import Error
from src.adapter.repositories.factory import build_repositories
from src.adapter.services.clock import SystemClock
from src.api.error import ClientError
from src.app.services.payment_gateway import SIGNATURE_HEADERS
from src.app.use_cases.payments import ProcessPaymentWebhook
from src.app.use_cases.payments.dtos import WebhookCommandDTO, WebhookResultDTO
from src.domain.purchase_order import PaymentProvider
from src.depends import get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


async def _handle(provider: PaymentProvider, request: Request, session) -> WebhookResultDTO:
    try:
        raw_body = (await request.body()).decode("utf-8")
    except UnicodeDecodeError:
        raise ClientError(Error(code="VALIDATION_ERROR", message="Webhook body must be UTF-8"))
    try:
        payload = json.loads(raw_body) if raw_body else {}
    except json.JSONDecodeError:
        raise ClientError(Error(code="VALIDATION_ERROR", message="Webhook body must be JSON"))
    if not isinstance(payload, dict):
        raise ClientError(Error(code="VALIDATION_ERROR", message="Webhook body must be a JSON object"))

    repos = build_repositories(session)

    use_case = ProcessPaymentWebhook(
        uow=repos.uow,
        webhook_repo=repos.webhook_events,
        order_repo=repos.orders,
        ledger_repo=repos.ledger,
        outbound_repo=repos.outbound_events,
        clock=SystemClock(),
        provider_secrets={
            PaymentProvider.RAZORPAY: ApplicationConfig.RAZORPAY_WEBHOOK_SECRET,
            PaymentProvider.UPI: ApplicationConfig.UPI_WEBHOOK_SECRET,
        },
        global_secret=ApplicationConfig.PAYMENT_WEBHOOK_SECRET,
    )
    result = await use_case.execute(
        WebhookCommandDTO(
            provider=provider.value,
            payload=payload,
            raw_body=raw_body or None,
            signature=request.headers.get(SIGNATURE_HEADERS[provider]),
        )
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post("/razorpay", response_model=WebhookResultDTO, status_code=status.HTTP_200_OK)
async def razorpay_webhook(request: Request, session=Depends(get_session)):
    """Razorpay webhook, signed with X-Razorpay-Signature"""
    return await _handle(PaymentProvider.RAZORPAY, request, session)


@router.post("/upi", response_model=WebhookResultDTO, status_code=status.HTTP_200_OK)
async def upi_webhook(request: Request, session=Depends(get_session)):
    """UPI aggregator webhook, signed with X-Upi-Signature"""
    return await _handle(PaymentProvider.UPI, request, session)
