"""ProcessPaymentWebhook Use Case

Reconciles signed payment provider webhooks into the ledger. Deliveries may
be replayed, duplicated or arrive out of order; each provider event is
applied at most once.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, Optional
from libs.result import Result, Return, Error
from src.app.repositories.ledger_repository import LedgerRepository
from src.app.repositories.outbound_event_repository import OutboundEventRepository
from src.app.repositories.payment_webhook_event_repository import PaymentWebhookEventRepository
from src.app.repositories.purchase_order_repository import PurchaseOrderRepository
from src.app.services.clock import Clock
from src.app.services.payment_gateway import (
    ParsedWebhookEvent,
    canonical_payload,
    parse_provider,
    parse_webhook_event,
    verify_webhook_signature,
)
from src.app.services.unit_of_work import UnitOfWork
from src.domain.exceptions import InvalidSignature
from src.domain.ledger_entry import LedgerEntryKind
from src.domain.purchase_order import PaymentProvider, PurchaseOrder, PurchaseOrderStatus
from .dtos import WebhookCommandDTO, WebhookResultDTO

logger = logging.getLogger(__name__)


class ProcessPaymentWebhook:
    """
    Use Case: Process a payment provider webhook

    Business Rules:
    1. The HMAC-SHA256 signature must match the provider secret or the
       global secret; rejected deliveries are recorded and change nothing
    2. Each (provider, provider_event_id) is processed once; replays report
       duplicate=True
    3. A capture credits the order's user once, however many capture
       events arrive for the order
    4. A failure never downgrades a captured order
    5. Unknown orders and unrelated event types are acknowledged and ignored

    Flow:
    1. Verify signature
    2. Parse and insert-or-fetch the webhook event row (locked)
    3. Resolve and lock the purchase order
    4. Apply capture / failure
    5. Mark the event processed and commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        webhook_repo: PaymentWebhookEventRepository,
        order_repo: PurchaseOrderRepository,
        ledger_repo: LedgerRepository,
        outbound_repo: OutboundEventRepository,
        clock: Clock,
        provider_secrets: Optional[Dict[PaymentProvider, Optional[str]]] = None,
        global_secret: Optional[str] = None,
    ):
        self.uow = uow
        self.webhook_repo = webhook_repo
        self.order_repo = order_repo
        self.ledger_repo = ledger_repo
        self.outbound_repo = outbound_repo
        self.clock = clock
        self.provider_secrets = provider_secrets or {}
        self.global_secret = global_secret

    def _secrets_for(self, provider: PaymentProvider) -> Iterable[Optional[str]]:
        return [self.provider_secrets.get(provider), self.global_secret]

    async def execute(self, command: WebhookCommandDTO) -> Result[WebhookResultDTO]:
        provider = parse_provider(command.provider)
        if not provider:
            return Return.err(
                Error(code="VALIDATION_ERROR", message=f"Unknown payment provider {command.provider}")
            )

        payload_for_hash = command.raw_body or canonical_payload(command.payload)

        # Step 1: Signature
        try:
            verify_webhook_signature(payload_for_hash, command.signature, self._secrets_for(provider))
        except InvalidSignature as e:
            await self._record_rejection(provider, command)
            logger.warning(f"Rejected {provider.value} webhook: {e}")
            return Return.err(
                Error(code="INVALID_SIGNATURE", message="Webhook signature is invalid", reason=str(e))
            )

        try:
            # Step 2: Dedupe
            parsed = parse_webhook_event(provider, command.payload, payload_for_hash)
            stored = await self.webhook_repo.get_or_create_locked(
                provider, parsed.provider_event_id, parsed.event_type, command.payload
            )
            event_id = stored.record.id

            if stored.record.processed_at is not None:
                await self.uow.rollback()
                logger.info(f"Duplicate {provider.value} webhook {parsed.provider_event_id}")
                return Return.ok(
                    WebhookResultDTO(duplicate=True, provider_event_id=parsed.provider_event_id)
                )

            now = self.clock.now()

            # Step 3: Order
            if not parsed.provider_order_id:
                return await self._ignore(event_id, parsed, "missing_order_id")

            order = await self.order_repo.get_by_provider_order_id(
                provider, parsed.provider_order_id, for_update=True
            )
            if not order:
                return await self._ignore(event_id, parsed, "unknown_order")

            # Step 4: Apply
            if parsed.is_capture_success:
                return await self._capture(event_id, parsed, order, now)

            if parsed.is_failure:
                note = "failure_after_capture"
                if order.status != PurchaseOrderStatus.CAPTURED:
                    await self.order_repo.update_status(
                        order.id, PurchaseOrderStatus.FAILED, parsed.provider_payment_id, now
                    )
                    note = "payment_failed"
                await self.webhook_repo.mark_processed(event_id, note, now, purchase_order_id=order.id)
                await self.uow.commit()
                return Return.ok(WebhookResultDTO(reason=note, provider_event_id=parsed.provider_event_id))

            return await self._ignore(event_id, parsed, "ignored_event", purchase_order_id=order.id)

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Failed to process {provider.value} webhook: {e}")
            return Return.err(
                Error(
                    code="WEBHOOK_PROCESSING_FAILED",
                    message="Failed to process payment webhook",
                    reason=str(e),
                )
            )

    async def _capture(
        self, event_id: int, parsed: ParsedWebhookEvent, order: PurchaseOrder, now: datetime
    ) -> Result[WebhookResultDTO]:
        order_id = order.id
        user_id = order.user_id
        credits = order.credits_to_grant

        if order.status == PurchaseOrderStatus.CAPTURED:
            await self.webhook_repo.mark_processed(event_id, "already_captured", now, purchase_order_id=order_id)
            await self.uow.commit()
            return Return.ok(
                WebhookResultDTO(reason="already_captured", provider_event_id=parsed.provider_event_id)
            )

        await self.order_repo.update_status(
            order_id, PurchaseOrderStatus.CAPTURED, parsed.provider_payment_id, now
        )
        grant = await self.ledger_repo.apply_entry(
            account_id=user_id,
            delta=credits,
            kind=LedgerEntryKind.PURCHASE_CAPTURE,
            reference=order_id,
            idempotency_key=parsed.provider_event_id,
        )
        await self.outbound_repo.enqueue(
            event_type="crm.payment.captured",
            aggregate_type="purchase_order",
            aggregate_id=order_id,
            dedupe_key=f"payment_captured:{order_id}",
            payload={
                "order_id": order_id,
                "user_id": user_id,
                "credits_granted": credits,
                "provider_event_id": parsed.provider_event_id,
                "provider_payment_id": parsed.provider_payment_id,
            },
            now=now,
        )
        await self.webhook_repo.mark_processed(
            event_id,
            "captured",
            now,
            purchase_order_id=order_id,
            ledger_entry_id=grant.record.id,
        )
        await self.uow.commit()

        logger.info(f"Order {order_id} captured, granted {credits} credits to {user_id}")
        return Return.ok(
            WebhookResultDTO(
                reason="captured",
                provider_event_id=parsed.provider_event_id,
                credited=grant.inserted,
            )
        )

    async def _ignore(
        self,
        event_id: int,
        parsed: ParsedWebhookEvent,
        reason: str,
        purchase_order_id: Optional[str] = None,
    ) -> Result[WebhookResultDTO]:
        await self.webhook_repo.mark_processed(
            event_id, reason, self.clock.now(), purchase_order_id=purchase_order_id
        )
        await self.uow.commit()
        logger.info(f"Ignored webhook {parsed.provider_event_id}: {reason}")
        return Return.ok(
            WebhookResultDTO(ignored=True, reason=reason, provider_event_id=parsed.provider_event_id)
        )

    async def _record_rejection(self, provider: PaymentProvider, command: WebhookCommandDTO) -> None:
        event_type = command.payload.get("event") or command.payload.get("status") or "unknown_event"
        try:
            await self.uow.rollback()
            await self.webhook_repo.record_rejected(provider, str(event_type), command.payload)
            await self.uow.commit()
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Failed to record rejected {provider.value} webhook: {e}")
