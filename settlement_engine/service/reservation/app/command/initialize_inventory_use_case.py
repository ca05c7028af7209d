from typing import Callable, Optional, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from sqlalchemy.exc import IntegrityError

from settlement_engine.platform.config.di import Container
from settlement_engine.platform.database.unit_of_work import AbstractUnitOfWork
from settlement_engine.platform.exception.exceptions import ConflictError
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.reservation.domain.entity.inventory_entity import Inventory


class InitializeInventoryUseCase:
    """
    Register the inventory ledger row for a published event (or ticket type).

    Counters start at zero; capacity and price are fixed at publish time.
    """

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
        self,
        *,
        event_id: UUID,
        total_capacity: int,
        price_cents: int,
        ticket_type_id: Optional[UUID] = None,
    ) -> Inventory:
        inventory = Inventory.create(
            event_id=event_id,
            ticket_type_id=ticket_type_id,
            total_capacity=total_capacity,
            price_cents=price_cents,
        )

        async with self.uow_factory() as uow:
            existing = await uow.inventory_repo.get_by_event_and_type(
                event_id=event_id, ticket_type_id=ticket_type_id
            )
            if existing:
                raise ConflictError('Inventory already initialized for this event')
            try:
                created = await uow.inventory_repo.create(inventory=inventory)
                await uow.commit()
            except IntegrityError as e:
                raise ConflictError('Inventory already initialized for this event') from e

        Logger.base.info(
            f'🎫 [INVENTORY] Initialized event {event_id} '
            f'(type={ticket_type_id}) capacity={total_capacity} price={price_cents}'
        )
        return created
