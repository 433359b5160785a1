"""Purchase Order Repository Interface"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from src.app.repositories.insert_result import InsertResult
from src.domain.purchase_order import PaymentProvider, PurchaseOrder, PurchaseOrderStatus


class PurchaseOrderRepository(ABC):

    @abstractmethod
    async def create(self, order: PurchaseOrder) -> InsertResult[PurchaseOrder]:
        """
        Insert-or-fetch on (user_id, idempotency_key)
        """
        pass

    @abstractmethod
    async def get_by_provider_order_id(
        self, provider: PaymentProvider, provider_order_id: str, for_update: bool = False
    ) -> Optional[PurchaseOrder]:
        pass

    @abstractmethod
    async def update_status(
        self,
        order_id: str,
        status: PurchaseOrderStatus,
        provider_payment_id: Optional[str],
        now: datetime,
    ) -> None:
        """
        Set status; provider_payment_id is only overwritten when given
        """
        pass
