"""Data Transfer Objects for Outbound Event Use Cases"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class EnqueueOutboundEventCommandDTO(BaseModel):
    """
    Command DTO for enqueuing an outbound event

    Used as input to EnqueueOutboundEvent use case.
    """

    event_type: str = Field(..., description="e.g. crm.contact_unlock.created")
    aggregate_type: str = Field(..., description="Kind of entity the event is about")
    aggregate_id: Optional[str] = Field(default=None, description="Id of that entity")
    dedupe_key: str = Field(..., description="Globally unique key; repeats are no-ops")
    payload: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        json_schema_extra = {
            "example": {
                "event_type": "crm.lead.created",
                "aggregate_type": "lead",
                "aggregate_id": "lead_19",
                "dedupe_key": "lead_created:lead_19",
                "payload": {"lead_id": "lead_19", "source": "listing_7"}
            }
        }


class EnqueueOutboundEventResponseDTO(BaseModel):
    event_id: int
    enqueued: bool = Field(..., description="False when the dedupe key was already queued")


class DispatchResultDTO(BaseModel):
    """
    Result DTO for one dispatcher run

    Returned by DispatchOutboundEvents use case.
    """

    claimed: int = 0
    dispatched: int = 0
    retried: int = Field(default=0, description="Failed attempts rescheduled with backoff")
    failed: int = Field(default=0, description="Events that reached max attempts")
    errored: int = Field(default=0, description="Events whose new state could not be saved this run")
