from .store import InMemoryStore, InMemorySession
from .repositories import (
    InMemoryLedgerRepository,
    InMemoryIdempotencyRepository,
    InMemoryUnlockRepository,
    InMemoryListingRepository,
    InMemoryPurchaseOrderRepository,
    InMemoryPaymentWebhookEventRepository,
    InMemoryOutboundEventRepository,
)

__all__ = [
    "InMemoryStore",
    "InMemorySession",
    "InMemoryLedgerRepository",
    "InMemoryIdempotencyRepository",
    "InMemoryUnlockRepository",
    "InMemoryListingRepository",
    "InMemoryPurchaseOrderRepository",
    "InMemoryPaymentWebhookEventRepository",
    "InMemoryOutboundEventRepository",
]
