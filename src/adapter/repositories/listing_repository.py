from typing import Optional
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.listing_repository import ListingRepository
from src.domain.listing import Listing


class SqlAlchemyListingRepository(ListingRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, listing_id: str) -> Optional[Listing]:
        return await self.session.get(Listing, listing_id)
