"""
Reservation Manager - the only writer of the inventory and reservation ledgers

Every method runs inside the caller's Unit of Work and never commits; the
calling use case owns the transaction boundary. Lock order is always
reservation row → inventory row (Reserve only touches inventory), so two
managers can never wait on each other in a cycle.
"""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from settlement_engine.platform.database.unit_of_work import AbstractUnitOfWork
from settlement_engine.platform.exception.exceptions import (
    DomainError,
    InventoryInvariantViolation,
    InventoryNotFoundError,
    ReservationNotFoundError,
)
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.reservation.app.dto.reservation_dto import (
    ConsumeOutcome,
    ConsumeResult,
    ReleaseResult,
)
from settlement_engine.service.reservation.domain.entity.reservation_entity import Reservation
from settlement_engine.service.reservation.domain.entity.ticket_entity import Ticket
from settlement_engine.service.reservation.domain.enum.reservation_status import (
    ReservationStatus,
)


class ReservationManager:
    def __init__(
        self,
        *,
        default_ttl_minutes: int,
        max_ttl_minutes: int,
        max_quantity: int,
    ) -> None:
        self.default_ttl = timedelta(minutes=default_ttl_minutes)
        self.max_ttl = timedelta(minutes=max_ttl_minutes)
        self.max_quantity = max_quantity

    def resolve_ttl(self, ttl: Optional[timedelta]) -> timedelta:
        if ttl is None:
            return self.default_ttl
        if ttl <= timedelta(0):
            raise DomainError('ttl must be positive')
        if ttl > self.max_ttl:
            max_minutes = int(self.max_ttl.total_seconds() // 60)
            raise DomainError(f'ttl must not exceed {max_minutes} minutes')
        return ttl

    @Logger.io
    async def reserve(
        self,
        uow: AbstractUnitOfWork,
        *,
        event_id: UUID,
        ticket_type_id: Optional[UUID],
        user_id: UUID,
        quantity: int,
        ttl: Optional[timedelta],
        now: datetime,
    ) -> Reservation:
        """
        Flow:
        1. Lock the inventory row (concurrent reserves queue here)
        2. Check availability against the fresh counters
        3. Increment reserved_count
        4. Insert the pending reservation with expires_at = now + ttl
        """
        resolved_ttl = self.resolve_ttl(ttl)

        inventory = await uow.inventory_repo.get_for_update(
            event_id=event_id, ticket_type_id=ticket_type_id
        )
        if inventory is None:
            raise InventoryNotFoundError()

        reservation = Reservation.create(
            inventory=inventory,
            user_id=user_id,
            quantity=quantity,
            ttl=resolved_ttl,
            max_quantity=self.max_quantity,
            now=now,
        )
        held = inventory.hold(quantity=quantity, now=now)

        await uow.inventory_repo.update_counters(inventory=held)
        await uow.reservation_repo.create(reservation=reservation)
        return reservation

    @Logger.io
    async def consume(
        self, uow: AbstractUnitOfWork, *, reservation_id: UUID, now: datetime
    ) -> ConsumeResult:
        """
        Flow:
        1. Lock the reservation row
        2. consumed → return the tickets already issued (no inventory change)
        3. expired/cancelled → EXPIRED
        4. pending past expires_at → release it as expired now → LAPSED
        5. pending → move quantity reserved → sold, mark consumed, issue tickets
        """
        reservation = await uow.reservation_repo.get_for_update(reservation_id=reservation_id)
        if reservation is None:
            raise ReservationNotFoundError()

        if reservation.status == ReservationStatus.CONSUMED:
            tickets = await uow.ticket_repo.list_by_reservation(reservation_id=reservation.id)
            return ConsumeResult(
                outcome=ConsumeOutcome.ALREADY_CONSUMED, reservation=reservation, tickets=tickets
            )

        if reservation.is_terminal:
            return ConsumeResult(outcome=ConsumeOutcome.EXPIRED, reservation=reservation)

        if reservation.has_lapsed(now=now):
            expired = await self._release_locked(
                uow, reservation=reservation, status=ReservationStatus.EXPIRED, now=now
            )
            Logger.base.info(
                f'⌛ [CONSUME] Reservation {reservation.id} lapsed at {reservation.expires_at}, '
                f'{reservation.quantity} returned to inventory'
            )
            return ConsumeResult(outcome=ConsumeOutcome.LAPSED, reservation=expired)

        inventory = await uow.inventory_repo.get_by_id_for_update(
            inventory_id=reservation.inventory_id
        )
        if inventory is None:
            raise InventoryInvariantViolation(
                f'Reservation {reservation.id} points at missing inventory {reservation.inventory_id}'
            )

        sold = inventory.confirm_sale(quantity=reservation.quantity, now=now)
        consumed = reservation.mark_consumed(now=now)
        tickets = Ticket.issue_for(reservation=consumed, now=now)

        await uow.inventory_repo.update_counters(inventory=sold)
        await uow.reservation_repo.update(reservation=consumed)
        await uow.ticket_repo.create_many(tickets=tickets)

        return ConsumeResult(outcome=ConsumeOutcome.CONSUMED, reservation=consumed, tickets=tickets)

    @Logger.io
    async def release(
        self,
        uow: AbstractUnitOfWork,
        *,
        reservation_id: UUID,
        status: ReservationStatus,
        now: datetime,
    ) -> ReleaseResult:
        """Terminal reservations are returned untouched (released=False)."""
        reservation = await uow.reservation_repo.get_for_update(reservation_id=reservation_id)
        if reservation is None:
            raise ReservationNotFoundError()

        if reservation.is_terminal:
            return ReleaseResult(reservation=reservation, released=False)

        released = await self._release_locked(uow, reservation=reservation, status=status, now=now)
        return ReleaseResult(reservation=released, released=True)

    @Logger.io
    async def expire_one(
        self, uow: AbstractUnitOfWork, *, reservation_id: UUID, now: datetime
    ) -> bool:
        """
        Sweeper path: never waits on a lock.

        Returns False when the row is held by live traffic, already terminal,
        or was extended past ``now`` since it was selected.
        """
        reservation = await uow.reservation_repo.get_pending_for_update_skip_locked(
            reservation_id=reservation_id
        )
        if reservation is None or not reservation.has_lapsed(now=now):
            return False

        await self._release_locked(
            uow, reservation=reservation, status=ReservationStatus.EXPIRED, now=now
        )
        return True

    async def _release_locked(
        self,
        uow: AbstractUnitOfWork,
        *,
        reservation: Reservation,
        status: ReservationStatus,
        now: datetime,
    ) -> Reservation:
        inventory = await uow.inventory_repo.get_by_id_for_update(
            inventory_id=reservation.inventory_id
        )
        if inventory is None:
            raise InventoryInvariantViolation(
                f'Reservation {reservation.id} points at missing inventory {reservation.inventory_id}'
            )

        restored = inventory.give_back(quantity=reservation.quantity, now=now)
        released = reservation.mark_released(status=status, now=now)

        await uow.inventory_repo.update_counters(inventory=restored)
        await uow.reservation_repo.update(reservation=released)
        return released
