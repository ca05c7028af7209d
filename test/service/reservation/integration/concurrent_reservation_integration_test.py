"""
Concurrency tests: inventory is never oversold, and the sweeper reclaims
lapsed holds while buyers keep reserving.
"""

from datetime import timedelta

import anyio
import pytest
from uuid_utils.compat import uuid7

from settlement_engine.platform.exception.exceptions import InsufficientInventoryError
from settlement_engine.service.reservation.app.command.expire_reservations_use_case import (
    ExpireReservationsUseCase,
)
from settlement_engine.service.reservation.driving_adapter.scheduler.expiration_sweeper import (
    ExpirationSweeper,
)


async def _race(reserve, *, event_id, buyers: int, quantity: int = 1):
    won, lost = [], []

    async def attempt() -> None:
        try:
            won.append(await reserve(event_id=event_id, user_id=uuid7(), quantity=quantity))
        except InsufficientInventoryError:
            lost.append(1)

    async with anyio.create_task_group() as tg:
        for _ in range(buyers):
            tg.start_soon(attempt)
    return won, lost


@pytest.mark.asyncio
async def test_last_ticket_goes_to_exactly_one_buyer(
    create_inventory, reserve, get_inventory, event_id
):
    await create_inventory(event_id=event_id, total_capacity=1)

    won, lost = await _race(reserve, event_id=event_id, buyers=10)

    assert (len(won), len(lost)) == (1, 9)
    inventory = await get_inventory(event_id)
    assert (inventory.reserved_count, inventory.available) == (1, 0)


@pytest.mark.asyncio
async def test_many_buyers_never_oversell(create_inventory, reserve, get_inventory, event_id):
    await create_inventory(event_id=event_id, total_capacity=7)

    won, lost = await _race(reserve, event_id=event_id, buyers=20, quantity=2)

    # 3 holds of 2 fit, the remaining single ticket cannot satisfy anyone
    assert len(won) == 3
    assert len(lost) == 17
    inventory = await get_inventory(event_id)
    assert inventory.reserved_count == 6
    assert inventory.reserved_count + inventory.sold_count <= inventory.total_capacity


@pytest.mark.asyncio
async def test_sweeper_reclaims_lapsed_holds(
    uow_factory, reservation_manager, create_inventory, reserve, get_inventory, event_id
):
    await create_inventory(event_id=event_id, total_capacity=3)
    for _ in range(3):
        await reserve(event_id=event_id, user_id=uuid7(), ttl=timedelta(seconds=1))
    assert (await get_inventory(event_id)).available == 0

    sweeper = ExpirationSweeper(
        use_case=ExpireReservationsUseCase(
            uow_factory=uow_factory, reservation_manager=reservation_manager, batch_size=100
        ),
        interval_seconds=0.2,
    )
    # Nothing has lapsed yet
    assert await sweeper.run_once() == 0

    async with anyio.create_task_group() as tg:
        await sweeper.start(task_group=tg)
        await anyio.sleep(1.5)
        tg.cancel_scope.cancel()

    inventory = await get_inventory(event_id)
    assert (inventory.reserved_count, inventory.available) == (0, 3)
    # Freed inventory is immediately reservable again
    await reserve(event_id=event_id, user_id=uuid7(), quantity=3)
