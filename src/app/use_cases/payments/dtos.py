"""Data Transfer Objects for Payment Use Cases"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class PurchaseIntentCommandDTO(BaseModel):
    """
    Command DTO for starting a credit purchase

    Used as input to CreatePurchaseIntent use case.
    """

    user_id: str = Field(..., description="Buyer")
    plan_id: str = Field(..., description="starter_10 or growth_20")
    provider: str = Field(..., description="razorpay or upi")
    idempotency_key: str = Field(..., description="Client-supplied Idempotency-Key")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "user_tenant_42",
                "plan_id": "starter_10",
                "provider": "razorpay",
                "idempotency_key": "buy-77aa"
            }
        }


class PurchaseIntentResponseDTO(BaseModel):
    """
    Response DTO for a purchase intent

    order_id is the provider order id the client passes to checkout.
    """

    order_id: str
    amount_paise: int
    credits_to_grant: int
    provider_payload: Dict[str, Any]

    class Config:
        json_schema_extra = {
            "example": {
                "order_id": "order_4f0c2a9d1e7b4c3a8f6e5d4c3b2a1f0e",
                "amount_paise": 9900,
                "credits_to_grant": 10,
                "provider_payload": {
                    "provider": "razorpay",
                    "order_id": "order_4f0c2a9d1e7b4c3a8f6e5d4c3b2a1f0e",
                    "amount_paise": 9900,
                    "currency": "INR",
                    "key_id": "rzp_test_key",
                    "notes": {"plan_id": "starter_10", "credits_to_grant": 10}
                }
            }
        }


class WebhookCommandDTO(BaseModel):
    """
    Command DTO for an inbound provider webhook

    raw_body is the exact request body when available; the signature is
    computed over it, falling back to the canonical JSON of payload.
    """

    provider: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    raw_body: Optional[str] = None
    signature: Optional[str] = None


class WebhookResultDTO(BaseModel):
    accepted: bool = True
    duplicate: bool = False
    ignored: bool = False
    reason: Optional[str] = None
    provider_event_id: Optional[str] = None
    credited: bool = Field(default=False, description="Whether this delivery granted credits")
