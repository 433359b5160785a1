"""Integration tests for purchase intents and webhook reconciliation on SQLite"""

import json
import pytest
from datetime import timedelta
from sqlmodel import select

from src.adapter.repositories.factory import build_repositories
from src.app.services.payment_gateway import compute_signature
from src.app.use_cases.payments import CreatePurchaseIntent, ProcessPaymentWebhook
from src.app.use_cases.payments.dtos import PurchaseIntentCommandDTO, WebhookCommandDTO
from src.app.use_cases.wallet import PurgeExpiredIdempotency
from src.domain.idempotency_record import IdempotencyRecord
from src.domain.payment_webhook_event import PaymentWebhookEvent
from src.domain.purchase_order import PaymentProvider, PurchaseOrder, PurchaseOrderStatus

SECRET = "whsec_test"


async def _intent(session_factory, clock, key="buy-1", plan_id="starter_10", provider="razorpay"):
    async with session_factory() as session:
        repos = build_repositories(session)
        use_case = CreatePurchaseIntent(
            uow=repos.uow,
            order_repo=repos.orders,
            idempotency_repo=repos.idempotency,
            clock=clock,
            provider_key="rzp_test_key",
            idempotency_ttl_seconds=3600,
        )
        return await use_case.execute(
            PurchaseIntentCommandDTO(user_id="user_1", plan_id=plan_id, provider=provider, idempotency_key=key)
        )


async def _webhook(session_factory, clock, payload, secret=SECRET, provider="razorpay"):
    raw = json.dumps(payload)
    async with session_factory() as session:
        repos = build_repositories(session)
        use_case = ProcessPaymentWebhook(
            uow=repos.uow,
            webhook_repo=repos.webhook_events,
            order_repo=repos.orders,
            ledger_repo=repos.ledger,
            outbound_repo=repos.outbound_events,
            clock=clock,
            provider_secrets={PaymentProvider.RAZORPAY: SECRET, PaymentProvider.UPI: SECRET},
        )
        return await use_case.execute(
            WebhookCommandDTO(
                provider=provider, payload=payload, raw_body=raw, signature=compute_signature(raw, secret)
            )
        )


def _razorpay(event, event_id, order_id):
    return {
        "id": event_id,
        "event": event,
        "payload": {"payment": {"entity": {"id": "pay_1", "order_id": order_id}}},
    }


async def _balance(session_factory, user_id="user_1"):
    async with session_factory() as session:
        return await build_repositories(session).ledger.get_balance(user_id)


@pytest.mark.asyncio
class TestPaymentFlow:

    async def test_capture_credits_once(self, session_factory, clock):
        """
        Given: A starter_10 purchase intent
        When: The capture webhook is delivered twice, then a second capture event and a stale failure arrive
        Then: 10 credits are granted exactly once and the order stays captured
        """
        intent = await _intent(session_factory, clock)
        order_id = intent.value.order_id

        first = await _webhook(session_factory, clock, _razorpay("payment.captured", "evt_1", order_id))
        replay = await _webhook(session_factory, clock, _razorpay("payment.captured", "evt_1", order_id))
        other = await _webhook(session_factory, clock, _razorpay("payment.captured", "evt_2", order_id))
        stale = await _webhook(session_factory, clock, _razorpay("payment.failed", "evt_3", order_id))

        assert first.value.credited is True
        assert replay.value.duplicate is True
        assert other.value.reason == "already_captured"
        assert stale.value.reason == "failure_after_capture"
        assert await _balance(session_factory) == 10

        async with session_factory() as session:
            order = (await session.execute(
                select(PurchaseOrder).where(PurchaseOrder.provider_order_id == order_id)
            )).scalars().one()
            assert order.status == PurchaseOrderStatus.CAPTURED
            assert order.provider_payment_id == "pay_1"

    async def test_invalid_signature_recorded(self, session_factory, clock):
        intent = await _intent(session_factory, clock)

        result = await _webhook(
            session_factory, clock, _razorpay("payment.captured", "evt_1", intent.value.order_id), secret="forged"
        )

        assert result.error.code == "INVALID_SIGNATURE"
        assert await _balance(session_factory) == 0
        async with session_factory() as session:
            events = (await session.execute(select(PaymentWebhookEvent))).scalars().all()
            assert len(events) == 1
            assert events[0].signature_valid is False
            assert events[0].processing_note == "invalid_signature"

    async def test_failure_then_late_capture(self, session_factory, clock):
        intent = await _intent(session_factory, clock, provider="upi", plan_id="growth_20")
        order_id = intent.value.order_id

        failed = await _webhook(
            session_factory, clock, {"status": "failed", "order_id": order_id, "transaction_id": "txn_1"}, provider="upi"
        )
        captured = await _webhook(
            session_factory, clock, {"status": "success", "order_id": order_id, "transaction_id": "txn_2"}, provider="upi"
        )

        assert failed.value.reason == "payment_failed"
        assert captured.value.reason == "captured"
        assert await _balance(session_factory) == 20

    async def test_unknown_order_acknowledged(self, session_factory, clock):
        result = await _webhook(session_factory, clock, _razorpay("payment.captured", "evt_1", "order_nope"))

        assert result.is_ok()
        assert result.value.ignored is True
        assert result.value.reason == "unknown_order"

    async def test_intent_replay_and_purge(self, session_factory, clock):
        """
        Given: A purchase intent with a one hour idempotency TTL
        When: It is retried inside the TTL, then the TTL passes and the purge runs
        Then: The retry gets the same order and the expired record is purged
        """
        first = await _intent(session_factory, clock)
        retry = await _intent(session_factory, clock, plan_id="growth_20")
        assert retry.value.order_id == first.value.order_id
        assert retry.value.credits_to_grant == 10

        clock.advance(seconds=3601)
        async with session_factory() as session:
            repos = build_repositories(session)
            purged = await PurgeExpiredIdempotency(repos.uow, repos.idempotency, clock).execute()
        assert purged.value.purged_count == 1

        # Past the TTL the order table still pins the key to the original order.
        after = await _intent(session_factory, clock, plan_id="growth_20")
        assert after.value.order_id == first.value.order_id

        async with session_factory() as session:
            records = (await session.execute(select(IdempotencyRecord))).scalars().all()
            assert len(records) == 1
            assert records[0].expires_at == clock.now() + timedelta(seconds=3600)
