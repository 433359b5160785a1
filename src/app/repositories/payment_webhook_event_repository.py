"""Payment Webhook Event Repository Interface"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional
from src.app.repositories.insert_result import InsertResult
from src.domain.payment_webhook_event import PaymentWebhookEvent
from src.domain.purchase_order import PaymentProvider


class PaymentWebhookEventRepository(ABC):

    @abstractmethod
    async def record_rejected(
        self, provider: PaymentProvider, event_type: str, payload: Dict[str, Any]
    ) -> PaymentWebhookEvent:
        """Keep a delivery that failed signature verification, for audit"""
        pass

    @abstractmethod
    async def get_or_create_locked(
        self,
        provider: PaymentProvider,
        provider_event_id: str,
        event_type: str,
        payload: Dict[str, Any],
    ) -> InsertResult[PaymentWebhookEvent]:
        """
        Insert-or-fetch on (provider, provider_event_id), then lock the row

        Concurrent deliveries of the same event serialize on the lock; the
        second one sees processed_at already set.
        """
        pass

    @abstractmethod
    async def mark_processed(
        self,
        event_id: int,
        note: str,
        now: datetime,
        purchase_order_id: Optional[str] = None,
        ledger_entry_id: Optional[int] = None,
    ) -> None:
        pass
