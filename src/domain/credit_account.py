"""Credit Account Domain Entity

Balance projection per user. Each user has exactly one account, created
lazily with a zero balance on first touch. Balance is only ever changed
together with the LedgerEntry that explains it.
"""

from datetime import datetime
from sqlmodel import Field, Column
from sqlalchemy import CheckConstraint, Integer, String
from src.domain.base import BaseModel


class CreditAccount(BaseModel, table=True):
    """
    Credit Account - Current credit balance of a user

    Domain Rules:
    - One account per user (account_id is the user id)
    - Balance is a non-negative integer
    - Balance updates only through LedgerEntry application
    - Balance always equals the sum of the account's ledger entry deltas
    """

    __tablename__ = "credit_accounts"
    __table_args__ = (
        CheckConstraint('balance >= 0', name='balance_non_negative'),
    )

    account_id: str = Field(
        sa_column=Column(String(64), primary_key=True),
        description="Owning user id"
    )

    balance: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="Current credit balance (never negative)"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Account creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last balance update timestamp"
    )

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "account_id": "user_tenant_42",
                "balance": 2,
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:00:00Z"
            }
        }
