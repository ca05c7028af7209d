from typing import Callable, List, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from settlement_engine.platform.config.di import Container
from settlement_engine.platform.database.unit_of_work import AbstractUnitOfWork
from settlement_engine.platform.exception.exceptions import InventoryNotFoundError
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.reservation.domain.entity.inventory_entity import Inventory


class GetAvailabilityUseCase:
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
    async def execute(self, *, event_id: UUID) -> List[Inventory]:
        async with self.uow_factory() as uow:
            inventories = await uow.inventory_repo.list_by_event(event_id=event_id)

        if not inventories:
            raise InventoryNotFoundError()
        return inventories
