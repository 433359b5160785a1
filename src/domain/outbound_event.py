"""Outbound Event Domain Entity

Transactional outbox row for notifications that must reach the downstream
CRM at least once.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import JSON, String, Text
from src.domain.base import BaseModel, BigIntPK


class OutboundEventStatus(str, Enum):
    PENDING = "pending"
    DISPATCHED = "dispatched"
    FAILED = "failed"


class OutboundEvent(BaseModel, table=True):
    """
    Outbound Event - Queued downstream notification

    Domain Rules:
    - dedupe_key is unique: the same logical event is enqueued once
    - Only the dispatcher advances status
    - pending -> dispatched (delivered) | failed (max attempts reached)
    - attempt_count never exceeds the dispatcher's max attempts
    """

    __tablename__ = "outbound_events"
    __table_args__ = (
        Index('ix_outbound_events_due', 'status', 'next_attempt_at'),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigIntPK, primary_key=True, autoincrement=True)
    )

    event_type: str = Field(sa_column=Column(String(100), nullable=False))

    aggregate_type: str = Field(sa_column=Column(String(50), nullable=False))

    aggregate_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True)
    )

    dedupe_key: str = Field(sa_column=Column(String(255), nullable=False, unique=True))

    payload: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False)
    )

    status: OutboundEventStatus = Field(default=OutboundEventStatus.PENDING)

    attempt_count: int = Field(default=0)

    next_attempt_at: datetime = Field(default_factory=datetime.utcnow)

    last_error: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True)
    )

    dispatched_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)

    updated_at: datetime = Field(default_factory=datetime.utcnow)
