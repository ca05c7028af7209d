from datetime import datetime, timezone
from typing import Callable, List, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from settlement_engine.platform.config.di import Container
from settlement_engine.platform.database.unit_of_work import AbstractUnitOfWork
from settlement_engine.platform.exception.exceptions import ReservationExpiredError
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.platform.metrics.settlement_metrics import metrics
from settlement_engine.service.reservation.app.dto.reservation_dto import ConsumeOutcome
from settlement_engine.service.reservation.app.reservation_manager import ReservationManager
from settlement_engine.service.reservation.domain.entity.ticket_entity import Ticket


class ConsumeReservationUseCase:
    """
    Convert a paid hold into tickets in its own transaction.

    Calling it again for a consumed reservation returns the same tickets.
    A lapsed hold is released and committed before ReservationExpiredError
    is raised, so the inventory is back on sale even if the sweeper never runs.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], AbstractUnitOfWork],
        reservation_manager: ReservationManager,
    ) -> None:
        self.uow_factory = uow_factory
        self.reservation_manager = reservation_manager
        self.tracer = trace.get_tracer(__name__)

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
    async def execute(self, *, reservation_id: UUID) -> List[Ticket]:
        with self.tracer.start_as_current_span(
            'use_case.consume_reservation',
            attributes={'reservation.id': str(reservation_id)},
        ):
            async with self.uow_factory() as uow:
                result = await self.reservation_manager.consume(
                    uow, reservation_id=reservation_id, now=datetime.now(timezone.utc)
                )
                await uow.commit()

            metrics.record_consume(
                outcome=result.outcome.value,
                tickets_issued=len(result.tickets)
                if result.outcome == ConsumeOutcome.CONSUMED
                else 0,
            )
            if result.outcome == ConsumeOutcome.LAPSED:
                metrics.record_release(status='expired', source='consume')

            if not result.succeeded:
                raise ReservationExpiredError()
            return result.tickets
