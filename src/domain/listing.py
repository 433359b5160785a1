"""Listing read model

Listings are owned by the listings service; the unlock workflow only needs
ownership, availability and the contact details revealed on unlock.
"""

from enum import Enum
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import String
from src.domain.base import BaseModel


class ListingStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    ARCHIVED = "archived"


class Listing(BaseModel, table=True):
    __tablename__ = "listings"

    id: str = Field(sa_column=Column(String(64), primary_key=True))

    owner_id: str = Field(sa_column=Column(String(64), nullable=False, index=True))

    status: ListingStatus = Field(default=ListingStatus.DRAFT)

    contact_phone_e164: Optional[str] = Field(
        default=None,
        sa_column=Column(String(20), nullable=True)
    )

    whatsapp_available: bool = Field(default=False)

    def is_unlockable(self) -> bool:
        return self.status == ListingStatus.ACTIVE
