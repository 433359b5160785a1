from .ledger_repository import SqlAlchemyLedgerRepository
from .idempotency_repository import SqlAlchemyIdempotencyRepository
from .unlock_repository import SqlAlchemyUnlockRepository
from .listing_repository import SqlAlchemyListingRepository
from .purchase_order_repository import SqlAlchemyPurchaseOrderRepository
from .payment_webhook_event_repository import SqlAlchemyPaymentWebhookEventRepository
from .outbound_event_repository import SqlAlchemyOutboundEventRepository

__all__ = [
    "SqlAlchemyLedgerRepository",
    "SqlAlchemyIdempotencyRepository",
    "SqlAlchemyUnlockRepository",
    "SqlAlchemyListingRepository",
    "SqlAlchemyPurchaseOrderRepository",
    "SqlAlchemyPaymentWebhookEventRepository",
    "SqlAlchemyOutboundEventRepository",
]
