"""Request schemas for Wallet and Admin API"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator


class PurchaseIntentRequestSchema(BaseModel):
    plan_id: str = Field(..., min_length=1, description="starter_10 or growth_20")
    provider: str = Field(..., min_length=1, description="razorpay or upi")

    class Config:
        json_schema_extra = {
            "example": {"plan_id": "starter_10", "provider": "razorpay"}
        }


class AdjustBalanceRequestSchema(BaseModel):
    """
    Request schema for an admin balance adjustment

    Used for POST /admin/wallet/adjust endpoint.
    """

    user_id: str = Field(..., min_length=1, description="Account to adjust")

    credits_delta: int = Field(..., description="Signed credit delta (non-zero)")

    reason: str = Field(..., description="Why the balance is being adjusted")

    @field_validator('credits_delta')
    @classmethod
    def validate_delta(cls, v):
        """Zero adjustments are meaningless"""
        if v == 0:
            raise ValueError("credits_delta must be non-zero")
        return v

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, v):
        if not v.strip():
            raise ValueError("reason is required")
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "user_tenant_42",
                "credits_delta": 5,
                "reason": "Goodwill credit for support ticket 1881"
            }
        }


class OutboundEventRequestSchema(BaseModel):
    event_type: str = Field(..., min_length=1)
    aggregate_type: str = Field(..., min_length=1)
    aggregate_id: Optional[str] = None
    dedupe_key: str = Field(..., min_length=1)
    payload: Dict[str, Any] = Field(default_factory=dict)
