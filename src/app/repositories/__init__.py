from .insert_result import Inserted, AlreadyExists, InsertResult
from .ledger_repository import LedgerRepository
from .idempotency_repository import IdempotencyRepository
from .unlock_repository import UnlockRepository
from .listing_repository import ListingRepository
from .purchase_order_repository import PurchaseOrderRepository
from .payment_webhook_event_repository import PaymentWebhookEventRepository
from .outbound_event_repository import OutboundEventRepository

__all__ = [
    "Inserted",
    "AlreadyExists",
    "InsertResult",
    "LedgerRepository",
    "IdempotencyRepository",
    "UnlockRepository",
    "ListingRepository",
    "PurchaseOrderRepository",
    "PaymentWebhookEventRepository",
    "OutboundEventRepository",
]
