"""Builds the repository set for a session of either storage backend"""

from dataclasses import dataclass
from typing import Union
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.repositories.idempotency_repository import SqlAlchemyIdempotencyRepository
from src.adapter.repositories.in_memory import (
    InMemoryIdempotencyRepository,
    InMemoryLedgerRepository,
    InMemoryListingRepository,
    InMemoryOutboundEventRepository,
    InMemoryPaymentWebhookEventRepository,
    InMemoryPurchaseOrderRepository,
    InMemorySession,
    InMemoryUnlockRepository,
)
from src.adapter.repositories.ledger_repository import SqlAlchemyLedgerRepository
from src.adapter.repositories.listing_repository import SqlAlchemyListingRepository
from src.adapter.repositories.outbound_event_repository import SqlAlchemyOutboundEventRepository
from src.adapter.repositories.payment_webhook_event_repository import (
    SqlAlchemyPaymentWebhookEventRepository,
)
from src.adapter.repositories.purchase_order_repository import SqlAlchemyPurchaseOrderRepository
from src.adapter.repositories.unlock_repository import SqlAlchemyUnlockRepository
from src.adapter.services.unit_of_work import InMemoryUnitOfWork, SqlAlchemyUnitOfWork
from src.app.repositories import (
    IdempotencyRepository,
    LedgerRepository,
    ListingRepository,
    OutboundEventRepository,
    PaymentWebhookEventRepository,
    PurchaseOrderRepository,
    UnlockRepository,
)
from src.app.services.unit_of_work import UnitOfWork


@dataclass
class Repositories:
    """Unit of work plus every repository, all bound to one session"""

    uow: UnitOfWork
    ledger: LedgerRepository
    idempotency: IdempotencyRepository
    unlocks: UnlockRepository
    listings: ListingRepository
    orders: PurchaseOrderRepository
    webhook_events: PaymentWebhookEventRepository
    outbound_events: OutboundEventRepository


def build_repositories(session: Union[AsyncSession, InMemorySession]) -> Repositories:
    if isinstance(session, InMemorySession):
        return Repositories(
            uow=InMemoryUnitOfWork(session),
            ledger=InMemoryLedgerRepository(session),
            idempotency=InMemoryIdempotencyRepository(session),
            unlocks=InMemoryUnlockRepository(session),
            listings=InMemoryListingRepository(session),
            orders=InMemoryPurchaseOrderRepository(session),
            webhook_events=InMemoryPaymentWebhookEventRepository(session),
            outbound_events=InMemoryOutboundEventRepository(session),
        )

    return Repositories(
        uow=SqlAlchemyUnitOfWork(session),
        ledger=SqlAlchemyLedgerRepository(session),
        idempotency=SqlAlchemyIdempotencyRepository(session),
        unlocks=SqlAlchemyUnlockRepository(session),
        listings=SqlAlchemyListingRepository(session),
        orders=SqlAlchemyPurchaseOrderRepository(session),
        webhook_events=SqlAlchemyPaymentWebhookEventRepository(session),
        outbound_events=SqlAlchemyOutboundEventRepository(session),
    )
