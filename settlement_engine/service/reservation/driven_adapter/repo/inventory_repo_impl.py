from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.reservation.app.interface.i_inventory_repo import IInventoryRepo
from settlement_engine.service.reservation.domain.entity.inventory_entity import Inventory
from settlement_engine.service.reservation.driven_adapter.model.inventory_model import (
    InventoryModel,
)


class InventoryRepoImpl(IInventoryRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _to_entity(db_inventory: InventoryModel) -> Inventory:
        return Inventory(
            id=db_inventory.id,
            event_id=db_inventory.event_id,
            ticket_type_id=db_inventory.ticket_type_id,
            price_cents=db_inventory.price_cents,
            total_capacity=db_inventory.total_capacity,
            reserved_count=db_inventory.reserved_count,
            sold_count=db_inventory.sold_count,
            created_at=db_inventory.created_at,
            updated_at=db_inventory.updated_at,
        )

    @staticmethod
    def _match_event_and_type(stmt, *, event_id: UUID, ticket_type_id: Optional[UUID]):
        stmt = stmt.where(InventoryModel.event_id == event_id)
        if ticket_type_id is None:
            return stmt.where(InventoryModel.ticket_type_id.is_(None))
        return stmt.where(InventoryModel.ticket_type_id == ticket_type_id)

    @Logger.io
    async def create(self, *, inventory: Inventory) -> Inventory:
        db_inventory = InventoryModel(
            id=inventory.id,
            event_id=inventory.event_id,
            ticket_type_id=inventory.ticket_type_id,
            price_cents=inventory.price_cents,
            total_capacity=inventory.total_capacity,
            reserved_count=inventory.reserved_count,
            sold_count=inventory.sold_count,
            created_at=inventory.created_at,
            updated_at=inventory.updated_at,
        )
        self.session.add(db_inventory)
        await self.session.flush()
        return self._to_entity(db_inventory)

    @Logger.io
    async def get_by_event_and_type(
        self, *, event_id: UUID, ticket_type_id: Optional[UUID]
    ) -> Optional[Inventory]:
        stmt = self._match_event_and_type(
            select(InventoryModel), event_id=event_id, ticket_type_id=ticket_type_id
        )
        db_inventory = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._to_entity(db_inventory) if db_inventory else None

    @Logger.io
    async def get_for_update(
        self, *, event_id: UUID, ticket_type_id: Optional[UUID]
    ) -> Optional[Inventory]:
        stmt = (
            self._match_event_and_type(
                select(InventoryModel), event_id=event_id, ticket_type_id=ticket_type_id
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        db_inventory = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._to_entity(db_inventory) if db_inventory else None

    @Logger.io
    async def get_by_id_for_update(self, *, inventory_id: UUID) -> Optional[Inventory]:
        stmt = (
            select(InventoryModel)
            .where(InventoryModel.id == inventory_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        db_inventory = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._to_entity(db_inventory) if db_inventory else None

    @Logger.io
    async def update_counters(self, *, inventory: Inventory) -> Inventory:
        # Caller holds the row lock
        await self.session.execute(
            update(InventoryModel)
            .where(InventoryModel.id == inventory.id)
            .values(
                reserved_count=inventory.reserved_count,
                sold_count=inventory.sold_count,
                updated_at=inventory.updated_at,
            )
        )
        return inventory

    @Logger.io
    async def list_by_event(self, *, event_id: UUID) -> List[Inventory]:
        result = await self.session.execute(
            select(InventoryModel)
            .where(InventoryModel.event_id == event_id)
            .order_by(InventoryModel.created_at)
            .execution_options(populate_existing=True)
        )
        return [self._to_entity(row) for row in result.scalars().all()]
