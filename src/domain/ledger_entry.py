"""Ledger Entry Domain Entity

Immutable append-only record of every balance change. Entries are never
edited or deleted; the sum of an account's deltas is its balance.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import CheckConstraint, ForeignKey, String, UniqueConstraint
from src.domain.base import BaseModel, BigIntPK


class LedgerEntryKind(str, Enum):
    """Causes of a balance change"""
    GRANT_SIGNUP = "grant_signup"          # Free credits on signup
    DEBIT_UNLOCK = "debit_unlock"          # One credit spent on a contact unlock
    REFUND_TIMEOUT = "refund_timeout"      # Owner did not respond in time
    ADMIN_ADJUST = "admin_adjust"          # Manual admin correction (+/-)
    PURCHASE_CAPTURE = "purchase_capture"  # Credits bought through a payment provider


class LedgerEntry(BaseModel, table=True):
    """
    Ledger Entry - Signed credit delta with its cause

    Domain Rules:
    - Entries are immutable (append-only)
    - delta is a non-zero signed integer
    - (account_id, idempotency_key) is unique when a key is present, which
      makes applying the same logical operation twice a no-op
    - reference points at the causing entity (listing, unlock, order, admin)
    - balance_after snapshots the account balance right after this entry
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        UniqueConstraint('account_id', 'idempotency_key', name='uq_ledger_entries_account_idempotency_key'),
        CheckConstraint('delta <> 0', name='delta_non_zero'),
        Index('ix_ledger_entries_account_created', 'account_id', 'created_at'),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigIntPK, primary_key=True, autoincrement=True),
        description="Unique entry identifier (auto-increment)"
    )

    account_id: str = Field(
        sa_column=Column(String(64), ForeignKey("credit_accounts.account_id"), nullable=False),
        description="Account whose balance changed"
    )

    delta: int = Field(
        description="Signed credit delta"
    )

    kind: LedgerEntryKind = Field(
        description="Cause of the balance change"
    )

    reference: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Opaque id of the causing entity"
    )

    idempotency_key: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Optional per-account idempotency key"
    )

    balance_after: int = Field(
        description="Account balance after applying this entry"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Entry timestamp (immutable)"
    )

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": 1,
                "account_id": "user_tenant_42",
                "delta": -1,
                "kind": "debit_unlock",
                "reference": "listing_7",
                "idempotency_key": "unlock-3f1c",
                "balance_after": 1,
                "created_at": "2024-01-01T00:00:00Z"
            }
        }
