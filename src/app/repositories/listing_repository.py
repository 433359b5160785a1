"""Listing Repository Interface

Read-only view over listings owned by the listings service.
"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.listing import Listing


class ListingRepository(ABC):

    @abstractmethod
    async def get_by_id(self, listing_id: str) -> Optional[Listing]:
        pass
