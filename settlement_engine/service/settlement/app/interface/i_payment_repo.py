from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from settlement_engine.service.settlement.domain.entity.payment_entity import Payment


class IPaymentRepo(ABC):
    @abstractmethod
    async def create_if_absent(self, *, payment: Payment) -> Payment:
        """Insert unless provider_payment_id is already recorded; returns the stored row."""
        pass

    @abstractmethod
    async def get_by_provider_payment_id(self, *, provider_payment_id: str) -> Optional[Payment]:
        pass

    @abstractmethod
    async def list_by_reservation(self, *, reservation_id: UUID) -> List[Payment]:
        pass
