"""Unit tests for CreatePurchaseIntent use case"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.app.repositories.insert_result import AlreadyExists, Inserted
from src.app.use_cases.payments.create_purchase_intent import CreatePurchaseIntent, PURCHASE_INTENT_ROUTE
from src.app.use_cases.payments.dtos import PurchaseIntentCommandDTO
from src.domain.purchase_order import PaymentProvider, PurchaseOrder


@pytest.fixture
def mock_order_repo():
    repo = MagicMock()
    repo.create = AsyncMock(side_effect=lambda order: Inserted(order))
    return repo


@pytest.fixture
def mock_idempotency_repo():
    repo = MagicMock()
    repo.get = AsyncMock(return_value=None)
    repo.put = AsyncMock(return_value=True)
    return repo


@pytest.fixture
def use_case(mock_uow, mock_order_repo, mock_idempotency_repo, mock_clock):
    return CreatePurchaseIntent(
        uow=mock_uow,
        order_repo=mock_order_repo,
        idempotency_repo=mock_idempotency_repo,
        clock=mock_clock,
        provider_key="rzp_test_key",
    )


def _command(plan_id="starter_10", provider="razorpay"):
    return PurchaseIntentCommandDTO(
        user_id="user_1", plan_id=plan_id, provider=provider, idempotency_key="buy-1"
    )


@pytest.mark.asyncio
class TestCreatePurchaseIntent:

    async def test_razorpay_order_created(self, use_case, mock_uow, mock_order_repo, mock_idempotency_repo):
        """
        Given: A known plan and provider
        When: A purchase intent is created
        Then: An order with the plan price is stored and the checkout payload returned
        """
        result = await use_case.execute(_command())

        assert result.is_ok()
        response = result.value
        assert response.order_id.startswith("order_")
        assert response.amount_paise == 9900
        assert response.credits_to_grant == 10
        assert response.provider_payload["key_id"] == "rzp_test_key"
        assert response.provider_payload["notes"] == {"plan_id": "starter_10", "credits_to_grant": 10}

        order = mock_order_repo.create.call_args.args[0]
        assert order.provider == PaymentProvider.RAZORPAY
        assert order.provider_order_id == response.order_id
        assert order.idempotency_key == "buy-1"
        assert mock_idempotency_repo.put.call_args.args[:3] == ("user_1", PURCHASE_INTENT_ROUTE, "buy-1")
        mock_uow.commit.assert_called_once()

    async def test_upi_order_has_deep_link(self, use_case):
        result = await use_case.execute(_command(plan_id="growth_20", provider="upi"))

        assert result.is_ok()
        payload = result.value.provider_payload
        assert result.value.amount_paise == 19900
        assert payload["deep_link"].startswith("upi://pay?")
        assert "am=199.00" in payload["deep_link"]

    async def test_replay_returns_original_order_even_for_other_plan(self, use_case, mock_order_repo):
        """
        Given: An order exists for (user, key) on starter_10
        When: The key is retried naming growth_20
        Then: The original starter_10 order is returned
        """
        existing = PurchaseOrder(
            id="po_1",
            user_id="user_1",
            provider=PaymentProvider.RAZORPAY,
            provider_order_id="order_existing",
            plan_id="starter_10",
            amount_paise=9900,
            credits_to_grant=10,
            idempotency_key="buy-1",
        )
        mock_order_repo.create = AsyncMock(return_value=AlreadyExists(existing))

        result = await use_case.execute(_command(plan_id="growth_20"))

        assert result.is_ok()
        assert result.value.order_id == "order_existing"
        assert result.value.credits_to_grant == 10

    async def test_cached_response_short_circuits(self, use_case, mock_order_repo, mock_idempotency_repo):
        mock_idempotency_repo.get = AsyncMock(
            return_value={
                "order_id": "order_cached",
                "amount_paise": 9900,
                "credits_to_grant": 10,
                "provider_payload": {"provider": "razorpay"},
            }
        )

        result = await use_case.execute(_command())

        assert result.value.order_id == "order_cached"
        mock_order_repo.create.assert_not_called()

    @pytest.mark.parametrize("plan_id,provider", [("gold_99", "razorpay"), ("starter_10", "paypal")])
    async def test_unknown_plan_or_provider(self, use_case, mock_order_repo, plan_id, provider):
        result = await use_case.execute(_command(plan_id=plan_id, provider=provider))

        assert result.is_err()
        assert result.error.code == "VALIDATION_ERROR"
        mock_order_repo.create.assert_not_called()
