"""CRM Client Interface

Defines the contract for delivering outbound events downstream.
"""

from abc import ABC, abstractmethod
from src.domain.outbound_event import OutboundEvent


class CrmClient(ABC):
    """
    Abstract downstream CRM

    Implementations can deliver via:
    - HTTP webhook
    - Log output (development)
    """

    @abstractmethod
    async def deliver(self, event: OutboundEvent) -> None:
        """
        Deliver one event

        Args:
            event: OutboundEvent to deliver

        Raises:
            ProviderTimeout: Delivery exceeded the configured timeout
            ProviderError: Delivery failed and may be retried
        """
        pass
