from .base import BaseModel, generate_uuid
from .credit_account import CreditAccount
from .ledger_entry import LedgerEntry, LedgerEntryKind
from .unlock_record import (
    UnlockRecord,
    UnlockEvent,
    OwnerResponseStatus,
    UnlockStatus,
    ResponseChannel,
)
from .listing import Listing, ListingStatus
from .idempotency_record import IdempotencyRecord
from .purchase_order import PurchaseOrder, PurchaseOrderStatus, PaymentProvider
from .payment_webhook_event import PaymentWebhookEvent
from .outbound_event import OutboundEvent, OutboundEventStatus

__all__ = [
    "BaseModel",
    "generate_uuid",
    "CreditAccount",
    "LedgerEntry",
    "LedgerEntryKind",
    "UnlockRecord",
    "UnlockEvent",
    "OwnerResponseStatus",
    "UnlockStatus",
    "ResponseChannel",
    "Listing",
    "ListingStatus",
    "IdempotencyRecord",
    "PurchaseOrder",
    "PurchaseOrderStatus",
    "PaymentProvider",
    "PaymentWebhookEvent",
    "OutboundEvent",
    "OutboundEventStatus",
]
