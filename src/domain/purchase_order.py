"""Purchase Order Domain Entity

Created when a purchase intent is issued; consumed by payment webhook
reconciliation to know who to credit and how much.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import String, UniqueConstraint
from src.domain.base import BaseModel, generate_uuid


class PaymentProvider(str, Enum):
    RAZORPAY = "razorpay"
    UPI = "upi"


class PurchaseOrderStatus(str, Enum):
    CREATED = "created"
    CAPTURED = "captured"
    FAILED = "failed"


class PurchaseOrder(BaseModel, table=True):
    """
    Purchase Order - Credits bought through a payment provider

    Domain Rules:
    - One order per (user_id, idempotency_key)
    - provider_order_id is unique per provider
    - Status transitions: created -> captured | failed; failed -> captured
      (a late capture still wins); captured is terminal
    """

    __tablename__ = "purchase_orders"
    __table_args__ = (
        UniqueConstraint('user_id', 'idempotency_key', name='uq_purchase_orders_user_key'),
        UniqueConstraint('provider', 'provider_order_id', name='uq_purchase_orders_provider_order'),
    )

    id: str = Field(
        default_factory=generate_uuid,
        sa_column=Column(String(36), primary_key=True)
    )

    user_id: str = Field(sa_column=Column(String(64), nullable=False, index=True))

    provider: PaymentProvider = Field(description="razorpay or upi")

    provider_order_id: str = Field(sa_column=Column(String(64), nullable=False))

    plan_id: str = Field(sa_column=Column(String(32), nullable=False))

    amount_paise: int = Field(description="Charged amount in paise")

    credits_to_grant: int = Field(description="Credits granted on capture")

    status: PurchaseOrderStatus = Field(default=PurchaseOrderStatus.CREATED)

    provider_payment_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True)
    )

    idempotency_key: str = Field(sa_column=Column(String(255), nullable=False))

    created_at: datetime = Field(default_factory=datetime.utcnow)

    updated_at: datetime = Field(default_factory=datetime.utcnow)
