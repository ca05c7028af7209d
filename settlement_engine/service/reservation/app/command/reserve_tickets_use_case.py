from datetime import datetime, timedelta, timezone
import time
from typing import Callable, Optional, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from settlement_engine.platform.config.di import Container
from settlement_engine.platform.database.unit_of_work import AbstractUnitOfWork
from settlement_engine.platform.exception.exceptions import (
    DomainError,
    InsufficientInventoryError,
    InventoryNotFoundError,
)
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.platform.metrics.settlement_metrics import metrics
from settlement_engine.service.reservation.app.reservation_manager import ReservationManager
from settlement_engine.service.reservation.domain.entity.reservation_entity import Reservation


class ReserveTicketsUseCase:
    """
    Place a time-boxed hold on inventory.

    Flow:
    1. Open a transaction
    2. ReservationManager.reserve: lock inventory row → check → increment → insert
    3. Commit (releases the inventory row lock for the next caller)
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
    async def execute(
        self,
        *,
        event_id: UUID,
        user_id: UUID,
        quantity: int,
        ticket_type_id: Optional[UUID] = None,
        ttl: Optional[timedelta] = None,
    ) -> Reservation:
        started = time.perf_counter()
        with self.tracer.start_as_current_span(
            'use_case.reserve_tickets',
            attributes={
                'event.id': str(event_id),
                'reservation.quantity': quantity,
            },
        ) as span:
            try:
                async with self.uow_factory() as uow:
                    reservation = await self.reservation_manager.reserve(
                        uow,
                        event_id=event_id,
                        ticket_type_id=ticket_type_id,
                        user_id=user_id,
                        quantity=quantity,
                        ttl=ttl,
                        now=datetime.now(timezone.utc),
                    )
                    await uow.commit()
            except InsufficientInventoryError:
                metrics.record_reservation(
                    result='insufficient', duration=time.perf_counter() - started
                )
                raise
            except InventoryNotFoundError:
                metrics.record_reservation(result='not_found', duration=time.perf_counter() - started)
                raise
            except DomainError:
                metrics.record_reservation(result='invalid', duration=time.perf_counter() - started)
                raise

            span.set_attribute('reservation.id', str(reservation.id))
            metrics.record_reservation(result='success', duration=time.perf_counter() - started)
            Logger.base.info(
                f'📝 [RESERVE] {reservation.id} holds {quantity} of event {event_id} '
                f'for user {user_id} until {reservation.expires_at.isoformat()}'
            )
            return reservation
