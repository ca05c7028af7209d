from datetime import datetime, timezone
from typing import Callable, Optional, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from settlement_engine.platform.config.di import Container
from settlement_engine.platform.database.unit_of_work import AbstractUnitOfWork
from settlement_engine.platform.exception.exceptions import (
    ForbiddenError,
    ReservationNotFoundError,
)
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.platform.metrics.settlement_metrics import metrics
from settlement_engine.service.reservation.app.dto.reservation_dto import ReleaseResult
from settlement_engine.service.reservation.app.reservation_manager import ReservationManager
from settlement_engine.service.reservation.domain.enum.reservation_status import (
    ReservationStatus,
)


class ReleaseReservationUseCase:
    """
    Give a hold back to inventory.

    Idempotent: releasing a consumed/expired/cancelled reservation is a no-op
    that returns its current state. When ``user_id`` is given the caller must
    own the reservation (explicit cancel from the API).
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], AbstractUnitOfWork],
        reservation_manager: ReservationManager,
    ) -> None:
        self.uow_factory = uow_factory
        self.reservation_manager = reservation_manager

    @classmethod
    @inject
    def depends(
        cls,
        uow_factory: Callable[[], AbstractUnitOfWork] = Depends(
            Provide[Container.unit_of_work.provider]
        ),
        reservation_manager: ReservationManager = Depends(Provide[Container.reservation_manager]),
    ) -> Self:
        return cls(uow_factory=uow_factory, reservation_manager=reservation_manager)

    @Logger.io
    async def execute(
        self,
        *,
        reservation_id: UUID,
        status: ReservationStatus = ReservationStatus.CANCELLED,
        user_id: Optional[UUID] = None,
    ) -> ReleaseResult:
        async with self.uow_factory() as uow:
            if user_id is not None:
                reservation = await uow.reservation_repo.get_by_id(reservation_id=reservation_id)
                if reservation is None:
                    raise ReservationNotFoundError()
                if reservation.user_id != user_id:
                    raise ForbiddenError('Only the owner can release this reservation')

            result = await self.reservation_manager.release(
                uow,
                reservation_id=reservation_id,
                status=status,
                now=datetime.now(timezone.utc),
            )
            await uow.commit()

        if result.released:
            metrics.record_release(status=status.value, source='api')
            Logger.base.info(
                f'↩️ [RELEASE] {reservation_id} → {status} '
                f'({result.reservation.quantity} back to inventory)'
            )
        return result
