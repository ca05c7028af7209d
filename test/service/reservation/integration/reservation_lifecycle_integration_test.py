"""
Integration tests for the reservation lifecycle against a real database

Reserve → Consume / Release / Expire, checking the inventory counters after
every step.
"""

from datetime import datetime, timedelta, timezone

import anyio
import pytest
from uuid_utils.compat import uuid7

from settlement_engine.platform.exception.exceptions import (
    ConflictError,
    DomainError,
    ForbiddenError,
    InsufficientInventoryError,
    InventoryNotFoundError,
    ReservationExpiredError,
    ReservationNotFoundError,
)
from settlement_engine.service.reservation.app.command.consume_reservation_use_case import (
    ConsumeReservationUseCase,
)
from settlement_engine.service.reservation.app.command.expire_reservations_use_case import (
    ExpireReservationsUseCase,
)
from settlement_engine.service.reservation.app.command.initialize_inventory_use_case import (
    InitializeInventoryUseCase,
)
from settlement_engine.service.reservation.app.command.release_reservation_use_case import (
    ReleaseReservationUseCase,
)
from settlement_engine.service.reservation.app.query.get_availability_use_case import (
    GetAvailabilityUseCase,
)
from settlement_engine.service.reservation.app.query.get_reservation_use_case import (
    GetReservationUseCase,
)
from settlement_engine.service.reservation.domain.enum.reservation_status import (
    ReservationStatus,
)


@pytest.fixture
def consume_use_case(uow_factory, reservation_manager) -> ConsumeReservationUseCase:
    return ConsumeReservationUseCase(
        uow_factory=uow_factory, reservation_manager=reservation_manager
    )


@pytest.fixture
def release_use_case(uow_factory, reservation_manager) -> ReleaseReservationUseCase:
    return ReleaseReservationUseCase(
        uow_factory=uow_factory, reservation_manager=reservation_manager
    )


@pytest.fixture
def expire_use_case(uow_factory, reservation_manager) -> ExpireReservationsUseCase:
    return ExpireReservationsUseCase(
        uow_factory=uow_factory, reservation_manager=reservation_manager, batch_size=2
    )


class TestInitializeInventory:
    @pytest.mark.asyncio
    async def test_initialize_once_per_event(self, uow_factory, create_inventory, event_id):
        await create_inventory(event_id=event_id, total_capacity=100)

        with pytest.raises(ConflictError):
            await InitializeInventoryUseCase(uow_factory=uow_factory).execute(
                event_id=event_id, total_capacity=50, price_cents=100
            )

    @pytest.mark.asyncio
    async def test_availability_reports_counters(self, uow_factory, create_inventory, event_id):
        await create_inventory(event_id=event_id, total_capacity=100)

        [inventory] = await GetAvailabilityUseCase(uow_factory=uow_factory).execute(
            event_id=event_id
        )

        assert (inventory.total_capacity, inventory.available) == (100, 100)

    @pytest.mark.asyncio
    async def test_availability_for_unknown_event(self, uow_factory):
        with pytest.raises(InventoryNotFoundError):
            await GetAvailabilityUseCase(uow_factory=uow_factory).execute(event_id=uuid7())


class TestReserve:
    @pytest.mark.asyncio
    async def test_reserve_holds_inventory(
        self, create_inventory, reserve, get_inventory, event_id, buyer_id
    ):
        await create_inventory(event_id=event_id, total_capacity=5)

        reservation = await reserve(event_id=event_id, user_id=buyer_id, quantity=3)

        inventory = await get_inventory(event_id)
        assert (inventory.reserved_count, inventory.sold_count) == (3, 0)
        assert reservation.status == ReservationStatus.PENDING
        assert reservation.expires_at > datetime.now(timezone.utc)

    @pytest.mark.asyncio
    async def test_reserve_more_than_available(
        self, create_inventory, reserve, get_inventory, event_id, buyer_id
    ):
        await create_inventory(event_id=event_id, total_capacity=5)
        await reserve(event_id=event_id, user_id=buyer_id, quantity=4)

        with pytest.raises(InsufficientInventoryError) as exc_info:
            await reserve(event_id=event_id, user_id=buyer_id, quantity=2)

        assert exc_info.value.available == 1
        # The failed attempt left nothing behind
        assert (await get_inventory(event_id)).reserved_count == 4

    @pytest.mark.asyncio
    async def test_reserve_unknown_event(self, reserve, buyer_id):
        with pytest.raises(InventoryNotFoundError):
            await reserve(event_id=uuid7(), user_id=buyer_id)

    @pytest.mark.asyncio
    async def test_reserve_with_ttl_above_maximum(
        self, create_inventory, reserve, event_id, buyer_id
    ):
        await create_inventory(event_id=event_id)

        with pytest.raises(DomainError):
            await reserve(event_id=event_id, user_id=buyer_id, ttl=timedelta(hours=2))


class TestConsume:
    @pytest.mark.asyncio
    async def test_consume_issues_tickets_and_sells(
        self, create_inventory, reserve, get_inventory, consume_use_case, event_id, buyer_id
    ):
        await create_inventory(event_id=event_id, total_capacity=5)
        reservation = await reserve(event_id=event_id, user_id=buyer_id, quantity=2)

        tickets = await consume_use_case.execute(reservation_id=reservation.id)

        assert len(tickets) == 2
        inventory = await get_inventory(event_id)
        assert (inventory.reserved_count, inventory.sold_count) == (0, 2)

    @pytest.mark.asyncio
    async def test_consume_is_idempotent(
        self, create_inventory, reserve, get_inventory, consume_use_case, event_id, buyer_id
    ):
        await create_inventory(event_id=event_id, total_capacity=5)
        reservation = await reserve(event_id=event_id, user_id=buyer_id, quantity=2)

        first = await consume_use_case.execute(reservation_id=reservation.id)
        second = await consume_use_case.execute(reservation_id=reservation.id)

        assert {t.id for t in first} == {t.id for t in second}
        assert (await get_inventory(event_id)).sold_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_consumes_sell_once(
        self, create_inventory, reserve, get_inventory, consume_use_case, event_id, buyer_id
    ):
        await create_inventory(event_id=event_id, total_capacity=5)
        reservation = await reserve(event_id=event_id, user_id=buyer_id, quantity=3)
        issued: list = []

        async def consume() -> None:
            issued.append(await consume_use_case.execute(reservation_id=reservation.id))

        async with anyio.create_task_group() as tg:
            for _ in range(4):
                tg.start_soon(consume)

        assert len({frozenset(t.id for t in tickets) for tickets in issued}) == 1
        inventory = await get_inventory(event_id)
        assert (inventory.reserved_count, inventory.sold_count) == (0, 3)

    @pytest.mark.asyncio
    async def test_consume_after_expiry_returns_inventory(
        self,
        create_inventory,
        reserve,
        get_inventory,
        get_reservation,
        consume_use_case,
        event_id,
        buyer_id,
        another_buyer_id,
    ):
        await create_inventory(event_id=event_id, total_capacity=2)
        reservation = await reserve(
            event_id=event_id, user_id=buyer_id, quantity=2, ttl=timedelta(seconds=1)
        )
        await anyio.sleep(1.1)

        with pytest.raises(ReservationExpiredError):
            await consume_use_case.execute(reservation_id=reservation.id)

        assert (await get_reservation(reservation.id)).status == ReservationStatus.EXPIRED
        assert (await get_inventory(event_id)).available == 2
        # Consume reclaimed the seats itself; no sweep has run
        resold = await reserve(event_id=event_id, user_id=another_buyer_id, quantity=2)
        assert resold.status == ReservationStatus.PENDING
        inventory = await get_inventory(event_id)
        assert (inventory.reserved_count, inventory.sold_count) == (2, 0)

    @pytest.mark.asyncio
    async def test_consume_unknown_reservation(self, consume_use_case):
        with pytest.raises(ReservationNotFoundError):
            await consume_use_case.execute(reservation_id=uuid7())


class TestRelease:
    @pytest.mark.asyncio
    async def test_release_returns_inventory(
        self, create_inventory, reserve, get_inventory, release_use_case, event_id, buyer_id
    ):
        await create_inventory(event_id=event_id, total_capacity=5)
        reservation = await reserve(event_id=event_id, user_id=buyer_id, quantity=2)

        result = await release_use_case.execute(reservation_id=reservation.id, user_id=buyer_id)

        assert result.released
        assert result.reservation.status == ReservationStatus.CANCELLED
        assert (await get_inventory(event_id)).available == 5

    @pytest.mark.asyncio
    async def test_release_twice_is_a_no_op(
        self, create_inventory, reserve, get_inventory, release_use_case, event_id, buyer_id
    ):
        await create_inventory(event_id=event_id, total_capacity=5)
        reservation = await reserve(event_id=event_id, user_id=buyer_id, quantity=2)
        await release_use_case.execute(reservation_id=reservation.id)

        second = await release_use_case.execute(
            reservation_id=reservation.id, status=ReservationStatus.EXPIRED
        )

        assert not second.released
        assert second.reservation.status == ReservationStatus.CANCELLED
        assert (await get_inventory(event_id)).available == 5

    @pytest.mark.asyncio
    async def test_release_after_consume_keeps_the_sale(
        self,
        create_inventory,
        reserve,
        get_inventory,
        consume_use_case,
        release_use_case,
        event_id,
        buyer_id,
    ):
        await create_inventory(event_id=event_id, total_capacity=5)
        reservation = await reserve(event_id=event_id, user_id=buyer_id, quantity=2)
        await consume_use_case.execute(reservation_id=reservation.id)

        result = await release_use_case.execute(
            reservation_id=reservation.id, status=ReservationStatus.EXPIRED
        )

        assert not result.released
        assert result.reservation.status == ReservationStatus.CONSUMED
        inventory = await get_inventory(event_id)
        assert (inventory.reserved_count, inventory.sold_count) == (0, 2)

    @pytest.mark.asyncio
    async def test_only_the_owner_can_release(
        self, create_inventory, reserve, release_use_case, event_id, buyer_id, another_buyer_id
    ):
        await create_inventory(event_id=event_id)
        reservation = await reserve(event_id=event_id, user_id=buyer_id)

        with pytest.raises(ForbiddenError):
            await release_use_case.execute(
                reservation_id=reservation.id, user_id=another_buyer_id
            )


class TestExpire:
    @pytest.mark.asyncio
    async def test_expired_hold_goes_back_on_sale(
        self,
        create_inventory,
        reserve,
        get_inventory,
        expire_use_case,
        event_id,
        buyer_id,
        another_buyer_id,
    ):
        await create_inventory(event_id=event_id, total_capacity=1)
        await reserve(event_id=event_id, user_id=buyer_id, ttl=timedelta(seconds=1))

        with pytest.raises(InsufficientInventoryError):
            await reserve(event_id=event_id, user_id=another_buyer_id)

        await anyio.sleep(1.1)
        assert await expire_use_case.execute() == 1

        reservation = await reserve(event_id=event_id, user_id=another_buyer_id)
        assert reservation.user_id == another_buyer_id
        assert (await get_inventory(event_id)).reserved_count == 1

    @pytest.mark.asyncio
    async def test_sweep_handles_more_than_one_batch(
        self, create_inventory, reserve, get_inventory, expire_use_case, event_id, buyer_id
    ):
        await create_inventory(event_id=event_id, total_capacity=10)
        for _ in range(5):
            await reserve(event_id=event_id, user_id=buyer_id, ttl=timedelta(seconds=30))
        live = await reserve(event_id=event_id, user_id=buyer_id, quantity=2)

        released = await expire_use_case.execute(
            now=datetime.now(timezone.utc) + timedelta(minutes=1)
        )

        assert released == 5
        inventory = await get_inventory(event_id)
        assert inventory.reserved_count == live.quantity

    @pytest.mark.asyncio
    async def test_sweep_leaves_consumed_reservations_alone(
        self,
        create_inventory,
        reserve,
        get_inventory,
        consume_use_case,
        expire_use_case,
        event_id,
        buyer_id,
    ):
        await create_inventory(event_id=event_id, total_capacity=5)
        reservation = await reserve(event_id=event_id, user_id=buyer_id, quantity=2)
        await consume_use_case.execute(reservation_id=reservation.id)

        released = await expire_use_case.execute(
            now=datetime.now(timezone.utc) + timedelta(hours=1)
        )

        assert released == 0
        assert (await get_inventory(event_id)).sold_count == 2


class TestGetReservation:
    @pytest.mark.asyncio
    async def test_owner_sees_tickets(
        self, uow_factory, create_inventory, reserve, consume_use_case, event_id, buyer_id
    ):
        await create_inventory(event_id=event_id)
        reservation = await reserve(event_id=event_id, user_id=buyer_id, quantity=2)
        await consume_use_case.execute(reservation_id=reservation.id)

        detail = await GetReservationUseCase(uow_factory=uow_factory).execute(
            reservation_id=reservation.id, user_id=buyer_id
        )

        assert detail.reservation.status == ReservationStatus.CONSUMED
        assert len(detail.tickets) == 2

    @pytest.mark.asyncio
    async def test_other_users_are_forbidden(
        self, uow_factory, create_inventory, reserve, event_id, buyer_id, another_buyer_id
    ):
        await create_inventory(event_id=event_id)
        reservation = await reserve(event_id=event_id, user_id=buyer_id)

        with pytest.raises(ForbiddenError):
            await GetReservationUseCase(uow_factory=uow_factory).execute(
                reservation_id=reservation.id, user_id=another_buyer_id
            )

    @pytest.mark.asyncio
    async def test_unscoped_read_sees_any_reservation(
        self, uow_factory, create_inventory, reserve, event_id, buyer_id
    ):
        await create_inventory(event_id=event_id)
        reservation = await reserve(event_id=event_id, user_id=buyer_id)

        detail = await GetReservationUseCase(uow_factory=uow_factory).execute(
            reservation_id=reservation.id
        )

        assert detail.reservation.user_id == buyer_id
