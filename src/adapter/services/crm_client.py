"""CRM Client Implementations

Provides concrete implementations for delivering outbound events.
"""

import logging
from typing import Optional
import httpx
from src.app.services.crm_client import CrmClient
from src.domain.exceptions import ProviderError, ProviderTimeout
from src.domain.outbound_event import OutboundEvent

logger = logging.getLogger(__name__)


class LoggingCrmClient(CrmClient):
    """
    CRM client that logs events instead of sending them

    Used when no CRM webhook URL is configured (development, tests).
    """

    async def deliver(self, event: OutboundEvent) -> None:
        logger.info(
            f"[CRM EVENT] Type: {event.event_type}, "
            f"Aggregate: {event.aggregate_type}/{event.aggregate_id}, "
            f"Dedupe key: {event.dedupe_key}"
        )


class HttpCrmClient(CrmClient):
    """
    CRM client that POSTs events to an HTTP webhook

    The body is the event payload; the event type and dedupe key travel as
    headers so the receiver can drop redeliveries.
    """

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize HTTP CRM client

        Args:
            webhook_url: URL to POST events to
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.transport = transport

    async def deliver(self, event: OutboundEvent) -> None:
        """
        Deliver event via webhook

        Raises:
            ProviderTimeout: Request timed out
            ProviderError: Connection error or non-2xx response
        """
        headers = {
            "Content-Type": "application/json",
            "X-Event-Type": event.event_type,
            "X-Dedupe-Key": event.dedupe_key,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.webhook_url, json=event.payload, headers=headers)
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ProviderTimeout(f"CRM delivery timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise ProviderError(f"CRM responded with HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"CRM delivery failed: {e}") from e

        logger.info(f"Outbound event {event.id} ({event.event_type}) delivered to {self.webhook_url}")


def create_crm_client(webhook_url: Optional[str] = None, timeout: float = 10.0) -> CrmClient:
    """
    Factory function to create the appropriate CRM client

    Args:
        webhook_url: Optional webhook URL. Without it events are only logged.
        timeout: Request timeout in seconds

    Returns:
        Configured CrmClient
    """
    if webhook_url:
        return HttpCrmClient(webhook_url, timeout=timeout)
    return LoggingCrmClient()
