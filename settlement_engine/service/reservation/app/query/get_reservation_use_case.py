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
from settlement_engine.service.reservation.app.dto.reservation_dto import ReservationDetail


class GetReservationUseCase:
    def __init__(self, *, uow_factory: Callable[[], AbstractUnitOfWork]) -> None:
        self.uow_factory = uow_factory

    @classmethod
    @inject
    def depends(
        cls,
        uow_factory: Callable[[], AbstractUnitOfWork] = Depends(
            Provide[Container.unit_of_work.provider]
        ),
    ) -> Self:
        return cls(uow_factory=uow_factory)

    @Logger.io
    async def execute(
        self, *, reservation_id: UUID, user_id: Optional[UUID] = None
    ) -> ReservationDetail:
        """Owner view of a reservation and any tickets it produced; no user_id means system."""
        async with self.uow_factory() as uow:
            reservation = await uow.reservation_repo.get_by_id(reservation_id=reservation_id)
            if reservation is None:
                raise ReservationNotFoundError()
            if user_id is not None and reservation.user_id != user_id:
                raise ForbiddenError('Only the owner can view this reservation')

            tickets = await uow.ticket_repo.list_by_reservation(reservation_id=reservation_id)

        return ReservationDetail(reservation=reservation, tickets=tickets)
