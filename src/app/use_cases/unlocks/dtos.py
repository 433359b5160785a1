"""Data Transfer Objects for Unlock Use Cases"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class UnlockCommandDTO(BaseModel):
    """
    Command DTO for unlocking a listing owner's contact

    Used as input to UnlockContact use case.
    """

    tenant_id: str = Field(..., description="Tenant spending the credit")
    listing_id: str = Field(..., description="Listing whose owner contact is revealed")
    idempotency_key: str = Field(..., description="Client-supplied Idempotency-Key")

    class Config:
        json_schema_extra = {
            "example": {
                "tenant_id": "user_tenant_42",
                "listing_id": "listing_7",
                "idempotency_key": "unlock-3f1c"
            }
        }


class OwnerContactDTO(BaseModel):
    phone_e164: Optional[str] = None
    whatsapp_available: bool = False


class UnlockResponseDTO(BaseModel):
    """
    Response DTO for an unlock

    A replay of the same key returns the same unlock_id and deadline.
    """

    unlock_id: str
    listing_id: str
    owner_contact: OwnerContactDTO
    credits_remaining: int = Field(..., description="Tenant balance after the unlock")
    response_deadline_at: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "unlock_id": "5b0e1c7a-5d2b-4a53-9a77-0f3e0c1f7f10",
                "listing_id": "listing_7",
                "owner_contact": {"phone_e164": "+919812345678", "whatsapp_available": True},
                "credits_remaining": 1,
                "response_deadline_at": "2024-01-01T12:00:00Z"
            }
        }


class MarkRespondedCommandDTO(BaseModel):
    owner_id: str
    unlock_id: str
    channel: str = Field(..., description="call, whatsapp or sms")


class MarkRespondedResponseDTO(BaseModel):
    unlock_id: str
    owner_response_status: str
    owner_responded_at: datetime
    channel: str


class RefundSweepResultDTO(BaseModel):
    """
    Result DTO for one refund sweep run

    Returned by RefundExpiredUnlocks use case.
    """

    refunded_count: int = Field(..., description="Unlocks refunded in this run")
    failed_count: int = Field(..., description="Unlocks that errored and were skipped")
    batches: int = Field(..., description="Non-empty batches processed")
