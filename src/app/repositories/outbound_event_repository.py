"""Outbound Event Repository Interface"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional
from src.app.repositories.insert_result import InsertResult
from src.domain.outbound_event import OutboundEvent, OutboundEventStatus


class OutboundEventRepository(ABC):
    """
    Repository interface for the outbound event queue

    Claiming uses the same skip-locked pattern as the refund sweep so two
    dispatcher runs never hold the same event.
    """

    @abstractmethod
    async def enqueue(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: Optional[str],
        dedupe_key: str,
        payload: Dict[str, Any],
        now: datetime,
    ) -> InsertResult[OutboundEvent]:
        """
        Insert-or-fetch on dedupe_key; the event becomes due immediately
        """
        pass

    @abstractmethod
    async def get_by_id(self, event_id: int) -> Optional[OutboundEvent]:
        pass

    @abstractmethod
    async def claim_due(self, now: datetime, limit: int, max_attempts: int) -> List[OutboundEvent]:
        """
        Lock up to `limit` pending events with next_attempt_at <= now and
        attempt_count < max_attempts, skipping rows locked elsewhere
        """
        pass

    @abstractmethod
    async def mark_dispatched(self, event_id: int, attempt_count: int, now: datetime) -> None:
        pass

    @abstractmethod
    async def record_failure(
        self,
        event_id: int,
        attempt_count: int,
        status: OutboundEventStatus,
        next_attempt_at: datetime,
        error: str,
        now: datetime,
    ) -> None:
        pass
