"""Idempotency Repository Interface

Stores the response of a completed mutating call under
(actor_id, route, key) so a verbatim retry is answered from the cache.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional


class IdempotencyRepository(ABC):
    """
    Repository interface for idempotency records

    Contract for callers: call get() before any side effect, and put() after
    the side effect in the same unit of work.
    """

    @abstractmethod
    async def get(
        self, actor_id: str, route: str, key: str, now: datetime
    ) -> Optional[Dict[str, Any]]:
        """
        Stored response for the triple, or None if absent or expired
        """
        pass

    @abstractmethod
    async def put(
        self,
        actor_id: str,
        route: str,
        key: str,
        response: Dict[str, Any],
        expires_at: datetime,
        now: datetime,
    ) -> bool:
        """
        Store a response once

        First writer wins: a concurrent duplicate put is a no-op. An expired
        record for the same triple is replaced.

        Returns:
            True if this call stored the response
        """
        pass

    @abstractmethod
    async def purge_expired(self, now: datetime) -> int:
        """Delete expired records, returning how many were removed"""
        pass
