"""SQLAlchemy implementation of PurchaseOrderRepository"""

from datetime import datetime
from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.repositories._dialect import row_values, upsert_insert
from src.app.repositories.insert_result import AlreadyExists, Inserted, InsertResult
from src.app.repositories.purchase_order_repository import PurchaseOrderRepository
from src.domain.purchase_order import PaymentProvider, PurchaseOrder, PurchaseOrderStatus


class SqlAlchemyPurchaseOrderRepository(PurchaseOrderRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, order: PurchaseOrder) -> InsertResult[PurchaseOrder]:
        result = await self.session.execute(
            upsert_insert(self.session, PurchaseOrder)
            .values(**row_values(order))
            .on_conflict_do_nothing(index_elements=["user_id", "idempotency_key"])
            .returning(PurchaseOrder.id)
        )
        order_id = result.scalar_one_or_none()

        if order_id is not None:
            return Inserted(await self.session.get(PurchaseOrder, order_id))

        stmt = select(PurchaseOrder).where(
            PurchaseOrder.user_id == order.user_id,
            PurchaseOrder.idempotency_key == order.idempotency_key,
        )
        return AlreadyExists((await self.session.execute(stmt)).scalar_one())

    async def get_by_provider_order_id(
        self, provider: PaymentProvider, provider_order_id: str, for_update: bool = False
    ) -> Optional[PurchaseOrder]:
        stmt = select(PurchaseOrder).where(
            PurchaseOrder.provider == provider,
            PurchaseOrder.provider_order_id == provider_order_id,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def update_status(
        self,
        order_id: str,
        status: PurchaseOrderStatus,
        provider_payment_id: Optional[str],
        now: datetime,
    ) -> None:
        order = await self.session.get(PurchaseOrder, order_id)
        if not order:
            raise ValueError(f"Purchase order {order_id} not found")

        order.status = status
        if provider_payment_id:
            order.provider_payment_id = provider_payment_id
        order.updated_at = now
        self.session.add(order)
        await self.session.flush()
