from typing import Callable, List, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from settlement_engine.platform.config.di import Container
from settlement_engine.platform.database.unit_of_work import AbstractUnitOfWork
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.reconciliation.domain.entity.reconciliation_report import (
    ReconciliationReport,
)


class ListReconciliationReportsUseCase:
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
    async def execute(self, *, event_id: UUID, limit: int = 20) -> List[ReconciliationReport]:
        """Most recent first"""
        async with self.uow_factory() as uow:
            return await uow.reconciliation_result_repo.list_by_event(
                event_id=event_id, limit=limit
            )
