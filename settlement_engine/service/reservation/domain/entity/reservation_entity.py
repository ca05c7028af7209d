from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

import attrs
from uuid_utils.compat import uuid7

from settlement_engine.platform.exception.exceptions import DomainError
from settlement_engine.platform.logging.loguru_io import Logger
from settlement_engine.service.reservation.domain.entity.inventory_entity import Inventory
from settlement_engine.service.reservation.domain.enum.reservation_status import (
    RELEASE_STATUSES,
    ReservationStatus,
)


@attrs.define
class Reservation:
    id: UUID
    event_id: UUID
    inventory_id: UUID
    user_id: UUID
    quantity: int
    unit_price_cents: int
    created_at: datetime
    expires_at: datetime
    ticket_type_id: Optional[UUID] = None
    status: ReservationStatus = ReservationStatus.PENDING
    consumed_at: Optional[datetime] = None
    released_at: Optional[datetime] = None
    checkout_session_id: Optional[str] = None

    @classmethod
    @Logger.io
    def create(
        cls,
        *,
        inventory: Inventory,
        user_id: UUID,
        quantity: int,
        ttl: timedelta,
        max_quantity: int,
        now: datetime,
    ) -> 'Reservation':
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise DomainError('quantity must be a positive integer')
        if quantity > max_quantity:
            raise DomainError(f'Maximum {max_quantity} tickets per reservation')
        if ttl <= timedelta(0):
            raise DomainError('ttl must be positive')

        return cls(
            id=uuid7(),
            event_id=inventory.event_id,
            inventory_id=inventory.id,
            ticket_type_id=inventory.ticket_type_id,
            user_id=user_id,
            quantity=quantity,
            unit_price_cents=inventory.price_cents,
            status=ReservationStatus.PENDING,
            created_at=now,
            expires_at=now + ttl,
        )

    @property
    def total_price_cents(self) -> int:
        return self.quantity * self.unit_price_cents

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def has_lapsed(self, *, now: datetime) -> bool:
        """Pending but past its deadline; the sweeper may not have caught it yet."""
        return self.status == ReservationStatus.PENDING and now >= self.expires_at

    @Logger.io
    def mark_consumed(self, *, now: datetime) -> 'Reservation':
        if self.status != ReservationStatus.PENDING:
            raise DomainError(f'Cannot consume a {self.status} reservation')
        return attrs.evolve(self, status=ReservationStatus.CONSUMED, consumed_at=now)

    @Logger.io
    def mark_released(self, *, status: ReservationStatus, now: datetime) -> 'Reservation':
        if status not in RELEASE_STATUSES:
            raise DomainError(f'Cannot release a reservation into {status}')
        if self.status != ReservationStatus.PENDING:
            raise DomainError(f'Cannot release a {self.status} reservation')
        return attrs.evolve(self, status=status, released_at=now)

    @Logger.io
    def attach_checkout_session(
        self, *, session_id: str, hold_until: Optional[datetime] = None
    ) -> 'Reservation':
        """The hold is stretched to cover the session: a session never outlives its hold"""
        if self.status != ReservationStatus.PENDING:
            raise DomainError('Checkout is only possible for pending reservations')
        expires_at = self.expires_at if hold_until is None else max(self.expires_at, hold_until)
        return attrs.evolve(self, checkout_session_id=session_id, expires_at=expires_at)
