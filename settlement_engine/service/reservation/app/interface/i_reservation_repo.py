from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from settlement_engine.service.reservation.domain.entity.reservation_entity import Reservation


class IReservationRepo(ABC):
    @abstractmethod
    async def create(self, *, reservation: Reservation) -> Reservation:
        pass

    @abstractmethod
    async def get_by_id(self, *, reservation_id: UUID) -> Optional[Reservation]:
        pass

    @abstractmethod
    async def get_for_update(self, *, reservation_id: UUID) -> Optional[Reservation]:
        """Lock the reservation row; Consume and Release serialize on this lock."""
        pass

    @abstractmethod
    async def get_pending_for_update_skip_locked(
        self, *, reservation_id: UUID
    ) -> Optional[Reservation]:
        """
        Lock the row only if it is still pending and nobody else holds it.

        Returns None when the row is locked by live traffic or already terminal.
        """
        pass

    @abstractmethod
    async def get_by_checkout_session_id(self, *, session_id: str) -> Optional[Reservation]:
        pass

    @abstractmethod
    async def list_expired_pending_ids(self, *, now: datetime, limit: int) -> List[UUID]:
        pass

    @abstractmethod
    async def update(self, *, reservation: Reservation) -> Reservation:
        pass
