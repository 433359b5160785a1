"""CreatePurchaseIntent Use Case

Creates a provider order for a credit plan and returns what the client
needs to start checkout.
"""

import logging
import uuid
from datetime import timedelta
from libs.result import Result, Return, Error
from src.app.repositories.idempotency_repository import IdempotencyRepository
from src.app.repositories.purchase_order_repository import PurchaseOrderRepository
from src.app.services.clock import Clock
from src.app.services.payment_gateway import (
    CREDIT_PLANS,
    build_provider_payload,
    get_credit_plan,
    parse_provider,
)
from src.app.services.unit_of_work import UnitOfWork
from src.domain.purchase_order import PaymentProvider, PurchaseOrder
from .dtos import PurchaseIntentCommandDTO, PurchaseIntentResponseDTO

logger = logging.getLogger(__name__)

PURCHASE_INTENT_ROUTE = "POST /wallet/purchase-intents"


class CreatePurchaseIntent:
    """
    Use Case: Create a purchase intent

    Business Rules:
    1. Plan and provider must be known
    2. One order per (user, Idempotency-Key); a retry returns the original
       order even if the retry names another plan
    3. Credits are granted later, by the capture webhook, never here
    """

    def __init__(
        self,
        uow: UnitOfWork,
        order_repo: PurchaseOrderRepository,
        idempotency_repo: IdempotencyRepository,
        clock: Clock,
        provider_key: str = "",
        idempotency_ttl_seconds: int = 86400,
    ):
        self.uow = uow
        self.order_repo = order_repo
        self.idempotency_repo = idempotency_repo
        self.clock = clock
        self.provider_key = provider_key
        self.idempotency_ttl_seconds = idempotency_ttl_seconds

    async def execute(self, command: PurchaseIntentCommandDTO) -> Result[PurchaseIntentResponseDTO]:
        plan = get_credit_plan(command.plan_id)
        if not plan:
            return Return.err(
                Error(
                    code="VALIDATION_ERROR",
                    message=f"plan_id must be one of {', '.join(sorted(CREDIT_PLANS))}",
                )
            )

        provider = parse_provider(command.provider)
        if not provider:
            return Return.err(
                Error(
                    code="VALIDATION_ERROR",
                    message=f"provider must be one of {', '.join(p.value for p in PaymentProvider)}",
                )
            )

        try:
            now = self.clock.now()

            cached = await self.idempotency_repo.get(
                command.user_id, PURCHASE_INTENT_ROUTE, command.idempotency_key, now
            )
            if cached:
                return Return.ok(PurchaseIntentResponseDTO.model_validate(cached))

            created = await self.order_repo.create(
                PurchaseOrder(
                    user_id=command.user_id,
                    provider=provider,
                    provider_order_id=f"order_{uuid.uuid4().hex}",
                    plan_id=plan.plan_id,
                    amount_paise=plan.amount_paise,
                    credits_to_grant=plan.credits,
                    idempotency_key=command.idempotency_key,
                    created_at=now,
                    updated_at=now,
                )
            )
            order = created.record
            order_plan = get_credit_plan(order.plan_id) or plan

            response = PurchaseIntentResponseDTO(
                order_id=order.provider_order_id,
                amount_paise=order.amount_paise,
                credits_to_grant=order.credits_to_grant,
                provider_payload=build_provider_payload(
                    order.provider, order.provider_order_id, order_plan, self.provider_key
                ),
            )

            await self.idempotency_repo.put(
                command.user_id,
                PURCHASE_INTENT_ROUTE,
                command.idempotency_key,
                response.model_dump(mode="json"),
                expires_at=now + timedelta(seconds=self.idempotency_ttl_seconds),
                now=now,
            )
            await self.uow.commit()

            if created.inserted:
                logger.info(
                    f"Purchase intent {response.order_id} created for {command.user_id} "
                    f"(plan={plan.plan_id}, provider={provider.value})"
                )
            return Return.ok(response)

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="PURCHASE_INTENT_FAILED",
                    message="Failed to create purchase intent",
                    reason=str(e),
                )
            )
