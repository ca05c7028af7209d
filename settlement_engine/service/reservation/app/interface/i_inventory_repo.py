from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from settlement_engine.service.reservation.domain.entity.inventory_entity import Inventory


class IInventoryRepo(ABC):
    """
    Inventory ledger persistence.

    Only the Reservation Manager mutates counters, and only on rows it has
    locked in the current transaction.
    """

    @abstractmethod
    async def create(self, *, inventory: Inventory) -> Inventory:
        pass

    @abstractmethod
    async def get_by_event_and_type(
        self, *, event_id: UUID, ticket_type_id: Optional[UUID]
    ) -> Optional[Inventory]:
        pass

    @abstractmethod
    async def get_for_update(
        self, *, event_id: UUID, ticket_type_id: Optional[UUID]
    ) -> Optional[Inventory]:
        """
        Lock the inventory row for the rest of the transaction.

        A concurrent caller blocks here until the holder commits or aborts,
        then reads the fresh counters.
        """
        pass

    @abstractmethod
    async def get_by_id_for_update(self, *, inventory_id: UUID) -> Optional[Inventory]:
        pass

    @abstractmethod
    async def update_counters(self, *, inventory: Inventory) -> Inventory:
        pass

    @abstractmethod
    async def list_by_event(self, *, event_id: UUID) -> List[Inventory]:
        pass
