"""Idempotency Record Domain Entity

Caches the full response of a retriable mutating call, keyed by
(actor_id, route, key), so a verbatim retry gets the same answer without
repeating side effects.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import JSON, String, UniqueConstraint
from src.domain.base import BaseModel, BigIntPK


class IdempotencyRecord(BaseModel, table=True):
    """
    Idempotency Record - Stored response of a completed operation

    Domain Rules:
    - One record per (actor_id, route, key); first writer wins
    - Written in the same transaction as the side effect it describes
    - Invisible once expires_at has passed, purged periodically
    """

    __tablename__ = "idempotency_records"
    __table_args__ = (
        UniqueConstraint('actor_id', 'route', 'key', name='uq_idempotency_records_actor_route_key'),
        Index('ix_idempotency_records_expires_at', 'expires_at'),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigIntPK, primary_key=True, autoincrement=True)
    )

    actor_id: str = Field(sa_column=Column(String(64), nullable=False))

    route: str = Field(sa_column=Column(String(128), nullable=False))

    key: str = Field(sa_column=Column(String(255), nullable=False))

    stored_response: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False)
    )

    created_at: datetime = Field(default_factory=datetime.utcnow)

    expires_at: datetime = Field(description="Record stops being served after this instant")

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now
