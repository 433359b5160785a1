"""Data Transfer Objects for Wallet Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class BalanceResponseDTO(BaseModel):
    """
    Response DTO for get balance operation

    Returned by GetBalance use case.
    """

    user_id: str = Field(
        ...,
        description="Account owner"
    )

    balance: int = Field(
        ...,
        description="Current credit balance"
    )

    last_updated: datetime = Field(
        ...,
        description="Timestamp of last balance update"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "user_tenant_42",
                "balance": 2,
                "last_updated": "2024-01-01T00:00:00Z"
            }
        }


class LedgerEntryDTO(BaseModel):
    """Single ledger entry in history listing"""

    id: int
    delta: int
    kind: str
    reference: Optional[str] = None
    balance_after: int
    created_at: datetime


class ListLedgerEntriesResponseDTO(BaseModel):
    """Paginated ledger history response"""

    entries: List[LedgerEntryDTO]
    total: int = Field(..., description="Total number of entries for the account")
    limit: int
    offset: int

    class Config:
        json_schema_extra = {
            "example": {
                "entries": [
                    {
                        "id": 7,
                        "delta": -1,
                        "kind": "debit_unlock",
                        "reference": "listing_7",
                        "balance_after": 1,
                        "created_at": "2024-01-01T00:00:00Z"
                    }
                ],
                "total": 3,
                "limit": 20,
                "offset": 0
            }
        }


class AdjustBalanceCommandDTO(BaseModel):
    """
    Command DTO for a manual admin adjustment

    Used as input to AdjustBalance use case. Range checks live in the use
    case so they surface as VALIDATION_ERROR results.
    """

    admin_id: str = Field(..., description="Admin performing the adjustment")
    user_id: str = Field(..., description="Account to adjust")
    credits_delta: int = Field(..., description="Signed, non-zero credit delta")
    reason: str = Field(..., description="Free-text justification for the audit trail")
    idempotency_key: str = Field(..., description="Client-supplied Idempotency-Key")

    class Config:
        json_schema_extra = {
            "example": {
                "admin_id": "admin_1",
                "user_id": "user_tenant_42",
                "credits_delta": 5,
                "reason": "Goodwill credit for support ticket 1881",
                "idempotency_key": "adj-5a1e"
            }
        }


class AdjustBalanceResponseDTO(BaseModel):
    entry_id: int
    user_id: str
    credits_delta: int
    balance: int
    reason: str


class SignupGrantResponseDTO(BaseModel):
    user_id: str
    granted: bool = Field(..., description="False when the grant had already been applied")
    credits: int
    balance: int


class LedgerDiscrepancyDTO(BaseModel):
    """
    DTO representing a single ledger discrepancy

    Used in ReconciliationResultDTO to report mismatches.
    """

    account_id: str = Field(..., description="Account with the discrepancy")
    ledger_balance: int = Field(..., description="Balance stored on the account")
    calculated_balance: int = Field(..., description="Sum of all ledger entry deltas")
    discrepancy: int = Field(..., description="ledger_balance - calculated_balance")


class ReconciliationResultDTO(BaseModel):
    """
    Result DTO for ledger reconciliation

    Returned by ReconcileLedger use case.
    """

    total_accounts_checked: int
    discrepancies_found: int
    discrepancies: List[LedgerDiscrepancyDTO] = Field(default_factory=list)
    reconciliation_time: datetime
    execution_time_ms: int


class PurgeResultDTO(BaseModel):
    purged_count: int
