"""Payment Webhook Event Domain Entity

Every inbound provider delivery is recorded. Valid deliveries are
deduplicated by (provider, provider_event_id); rejected ones are kept with
signature_valid = False for audit.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from sqlmodel import Field, Column
from sqlalchemy import JSON, String, UniqueConstraint
from src.domain.base import BaseModel, BigIntPK
from src.domain.purchase_order import PaymentProvider


class PaymentWebhookEvent(BaseModel, table=True):
    __tablename__ = "payment_webhook_events"
    __table_args__ = (
        UniqueConstraint('provider', 'provider_event_id', name='uq_payment_webhook_events_provider_event'),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigIntPK, primary_key=True, autoincrement=True)
    )

    provider: PaymentProvider

    provider_event_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True)
    )

    event_type: str = Field(sa_column=Column(String(100), nullable=False))

    signature_valid: bool

    payload: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False)
    )

    purchase_order_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(36), nullable=True)
    )

    ledger_entry_id: Optional[int] = Field(default=None)

    processing_note: Optional[str] = Field(
        default=None,
        sa_column=Column(String(50), nullable=True)
    )

    processed_at: Optional[datetime] = Field(default=None)

    received_at: datetime = Field(default_factory=datetime.utcnow)
