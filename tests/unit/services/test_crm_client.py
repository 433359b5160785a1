"""Unit tests for CRM client implementations"""

import httpx
import pytest

from src.adapter.services.crm_client import HttpCrmClient, LoggingCrmClient, create_crm_client
from src.domain.exceptions import ProviderError, ProviderTimeout
from src.domain.outbound_event import OutboundEvent


@pytest.fixture
def event():
    return OutboundEvent(
        id=1,
        event_type="crm.payment.captured",
        aggregate_type="purchase_order",
        aggregate_id="po_1",
        dedupe_key="payment_captured:po_1",
        payload={"order_id": "po_1", "credits_granted": 10},
    )


def test_factory_selects_client():
    assert isinstance(create_crm_client(None), LoggingCrmClient)
    assert isinstance(create_crm_client("https://crm.example.com/hook"), HttpCrmClient)


@pytest.mark.asyncio
class TestHttpCrmClient:

    async def test_posts_payload_with_dedupe_headers(self, event):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = request.content
            return httpx.Response(202)

        client = HttpCrmClient("https://crm.example.com/hook", transport=httpx.MockTransport(handler))

        await client.deliver(event)

        assert seen["url"] == "https://crm.example.com/hook"
        assert seen["headers"]["x-event-type"] == "crm.payment.captured"
        assert seen["headers"]["x-dedupe-key"] == "payment_captured:po_1"
        assert b'"credits_granted"' in seen["body"]

    async def test_non_2xx_is_provider_error(self, event):
        client = HttpCrmClient(
            "https://crm.example.com/hook",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )

        with pytest.raises(ProviderError, match="503"):
            await client.deliver(event)

    async def test_timeout_is_provider_timeout(self, event):
        def handler(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        client = HttpCrmClient("https://crm.example.com/hook", timeout=0.5, transport=httpx.MockTransport(handler))

        with pytest.raises(ProviderTimeout):
            await client.deliver(event)

    async def test_connection_error_is_provider_error(self, event):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = HttpCrmClient("https://crm.example.com/hook", transport=httpx.MockTransport(handler))

        with pytest.raises(ProviderError):
            await client.deliver(event)

    async def test_logging_client_never_fails(self, event):
        await LoggingCrmClient().deliver(event)
