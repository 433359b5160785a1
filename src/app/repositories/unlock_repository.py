"""Unlock Repository Interface"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from src.app.repositories.insert_result import InsertResult
from src.domain.unlock_record import ResponseChannel, UnlockEvent, UnlockRecord


class UnlockRepository(ABC):
    """
    Repository interface for unlock records and their audit events

    State transitions are guarded updates: they only match rows still in
    pending/active, so a record can reach exactly one terminal state no
    matter how callers interleave.
    """

    @abstractmethod
    async def get_by_id(self, unlock_id: str, for_update: bool = False) -> Optional[UnlockRecord]:
        pass

    @abstractmethod
    async def get_by_tenant_key(self, tenant_id: str, idempotency_key: str) -> Optional[UnlockRecord]:
        """
        Record created by this tenant with this key, for any listing

        Used to detect a key being reused for a different listing.
        """
        pass

    @abstractmethod
    async def create(self, record: UnlockRecord) -> InsertResult[UnlockRecord]:
        """
        Insert-or-fetch on (tenant_id, listing_id, idempotency_key)
        """
        pass

    @abstractmethod
    async def mark_responded(
        self, unlock_id: str, responded_at: datetime, channel: ResponseChannel
    ) -> bool:
        """
        pending/active -> responded/active

        Returns:
            True if the row was still pending and is now responded
        """
        pass

    @abstractmethod
    async def claim_due(
        self, now: datetime, limit: int, exclude_ids: Iterable[str] = ()
    ) -> List[UnlockRecord]:
        """
        Lock up to `limit` pending/active records whose deadline has passed

        Rows already locked by a concurrent claimer are skipped rather than
        waited on (FOR UPDATE SKIP LOCKED). Oldest deadlines first.
        """
        pass

    @abstractmethod
    async def mark_refunded(self, unlock_id: str, refund_entry_id: int, now: datetime) -> bool:
        """
        pending/active -> timeout_refunded/refunded

        Returns:
            True if the guard matched; False means the record already left
            pending/active and must not be refunded
        """
        pass

    @abstractmethod
    async def add_event(
        self,
        unlock_id: str,
        actor_role: str,
        event_type: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> UnlockEvent:
        pass

    @abstractmethod
    async def list_events(self, unlock_id: str) -> List[UnlockEvent]:
        pass
