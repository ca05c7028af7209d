from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.reservation.app.command.initialize_inventory_use_case import (
    InitializeInventoryUseCase,
)
from settlement_engine.service.reservation.app.query.get_availability_use_case import (
    GetAvailabilityUseCase,
)
from settlement_engine.service.reservation.domain.entity.inventory_entity import Inventory
from settlement_engine.service.reservation.driving_adapter.http_controller.schema.reservation_schema import (
    InventoryCreateRequest,
    InventoryResponse,
)
from settlement_engine.service.shared_kernel.domain.current_user import CurrentUser
from settlement_engine.service.shared_kernel.driving_adapter.auth.role_auth import (
    get_current_user,
    require_system,
)


router = APIRouter()


def _to_response(inventory: Inventory) -> InventoryResponse:
    return InventoryResponse(
        id=inventory.id,
        event_id=inventory.event_id,
        ticket_type_id=inventory.ticket_type_id,
        total_capacity=inventory.total_capacity,
        reserved_count=inventory.reserved_count,
        sold_count=inventory.sold_count,
        available=inventory.available,
        price_cents=inventory.price_cents,
    )


@router.post('', status_code=status.HTTP_201_CREATED)
@Logger.io
async def initialize_inventory(
    request: InventoryCreateRequest,
    current_user: CurrentUser = Depends(require_system),
    use_case: InitializeInventoryUseCase = Depends(InitializeInventoryUseCase.depends),
) -> InventoryResponse:
    inventory = await use_case.execute(
        event_id=request.event_id,
        ticket_type_id=request.ticket_type_id,
        total_capacity=request.total_capacity,
        price_cents=request.price_cents,
    )
    return _to_response(inventory)


@router.get('/{event_id}')
@Logger.io
async def get_availability(
    event_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    use_case: GetAvailabilityUseCase = Depends(GetAvailabilityUseCase.depends),
) -> List[InventoryResponse]:
    inventories = await use_case.execute(event_id=event_id)
    return [_to_response(inventory) for inventory in inventories]
