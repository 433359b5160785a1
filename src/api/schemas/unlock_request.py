"""Request schemas for Unlock API"""

from pydantic import BaseModel, Field


class UnlockRequestSchema(BaseModel):
    """
    Request schema for unlocking an owner's contact

    Used for POST /contacts/unlock endpoint. The Idempotency-Key header is
    required alongside it.
    """

    listing_id: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Listing to unlock (required, non-empty)"
    )

    class Config:
        json_schema_extra = {
            "example": {"listing_id": "listing_7"}
        }


class OwnerRespondedRequestSchema(BaseModel):
    channel: str = Field(..., description="call, whatsapp or sms")

    class Config:
        json_schema_extra = {
            "example": {"channel": "whatsapp"}
        }
