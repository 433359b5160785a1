"""Unlock Record Domain Entities

A tenant spends one credit to reveal a listing owner's contact details.
The owner then has a fixed window to respond; otherwise the credit is
refunded by the sweep.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import JSON, ForeignKey, String, UniqueConstraint
from src.domain.base import BaseModel, BigIntPK, generate_uuid


class OwnerResponseStatus(str, Enum):
    PENDING = "pending"
    RESPONDED = "responded"
    TIMEOUT_REFUNDED = "timeout_refunded"


class UnlockStatus(str, Enum):
    ACTIVE = "active"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class ResponseChannel(str, Enum):
    CALL = "call"
    WHATSAPP = "whatsapp"
    SMS = "sms"


class UnlockRecord(BaseModel, table=True):
    """
    Unlock Record - One paid contact reveal

    Domain Rules:
    - Exactly one record per (tenant_id, listing_id, idempotency_key)
    - Always linked to the debit ledger entry that paid for it
    - Lifecycle: pending/active -> responded/active (owner answered)
                 pending/active -> timeout_refunded/refunded (sweep refund)
    - Both outcomes are terminal
    """

    __tablename__ = "unlock_records"
    __table_args__ = (
        UniqueConstraint('tenant_id', 'listing_id', 'idempotency_key', name='uq_unlock_records_tenant_listing_key'),
        Index('ix_unlock_records_tenant_key', 'tenant_id', 'idempotency_key'),
        Index('ix_unlock_records_due', 'owner_response_status', 'unlock_status', 'response_deadline_at'),
    )

    id: str = Field(
        default_factory=generate_uuid,
        sa_column=Column(String(36), primary_key=True),
        description="Unlock identifier (uuid)"
    )

    tenant_id: str = Field(
        sa_column=Column(String(64), nullable=False),
        description="Tenant who paid for the unlock"
    )

    listing_id: str = Field(
        sa_column=Column(String(64), nullable=False),
        description="Unlocked listing"
    )

    idempotency_key: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="Client-supplied key scoping this unlock"
    )

    ledger_entry_id: int = Field(
        sa_column=Column(BigIntPK, ForeignKey("ledger_entries.id"), nullable=False),
        description="Debit entry that paid for the unlock"
    )

    owner_response_status: OwnerResponseStatus = Field(
        default=OwnerResponseStatus.PENDING,
        description="pending, responded or timeout_refunded"
    )

    unlock_status: UnlockStatus = Field(
        default=UnlockStatus.ACTIVE,
        description="active, refunded or cancelled"
    )

    response_deadline_at: datetime = Field(
        description="Owner must respond before this instant"
    )

    owner_responded_at: Optional[datetime] = Field(
        default=None,
        description="When the owner responded"
    )

    response_channel: Optional[ResponseChannel] = Field(
        default=None,
        description="Channel the owner used to respond"
    )

    refund_entry_id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigIntPK, ForeignKey("ledger_entries.id"), nullable=True),
        description="Compensating credit entry, set when refunded"
    )

    created_at: datetime = Field(default_factory=datetime.utcnow)

    updated_at: datetime = Field(default_factory=datetime.utcnow)


class UnlockEvent(BaseModel, table=True):
    """Audit trail of unlock lifecycle events"""

    __tablename__ = "unlock_events"

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigIntPK, primary_key=True, autoincrement=True)
    )

    unlock_id: str = Field(
        sa_column=Column(String(36), ForeignKey("unlock_records.id"), nullable=False, index=True)
    )

    actor_role: str = Field(
        sa_column=Column(String(20), nullable=False),
        description="tenant, owner or system"
    )

    event_type: str = Field(
        sa_column=Column(String(50), nullable=False),
        description="unlock_created, owner_responded or refund_issued"
    )

    event_metadata: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False)
    )

    created_at: datetime = Field(default_factory=datetime.utcnow)
