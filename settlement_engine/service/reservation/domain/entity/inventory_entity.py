from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import attrs
from uuid_utils.compat import uuid7

from settlement_engine.platform.exception.exceptions import (
    DomainError,
    InsufficientInventoryError,
    InventoryInvariantViolation,
)
from settlement_engine.platform.logging.loguru_io import Logger


@attrs.define
class Inventory:
    """
    Per-event (optionally per-ticket-type) counters.

    Invariant: 0 <= reserved_count, 0 <= sold_count,
    reserved_count + sold_count <= total_capacity.
    Every transition returns a new instance and re-checks the invariant.
    """

    id: UUID
    event_id: UUID
    total_capacity: int
    price_cents: int = 0
    ticket_type_id: Optional[UUID] = None
    reserved_count: int = 0
    sold_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    @Logger.io
    def create(
        cls,
        *,
        event_id: UUID,
        total_capacity: int,
        price_cents: int,
        ticket_type_id: Optional[UUID] = None,
    ) -> 'Inventory':
        if total_capacity <= 0:
            raise DomainError('total_capacity must be positive')
        if price_cents < 0:
            raise DomainError('price_cents must not be negative')

        now = datetime.now(timezone.utc)
        return cls(
            id=uuid7(),
            event_id=event_id,
            ticket_type_id=ticket_type_id,
            total_capacity=total_capacity,
            price_cents=price_cents,
            created_at=now,
            updated_at=now,
        )

    @property
    def available(self) -> int:
        return self.total_capacity - self.reserved_count - self.sold_count

    def assert_invariant(self) -> None:
        if self.reserved_count < 0 or self.sold_count < 0:
            raise InventoryInvariantViolation(
                f'Negative counters on inventory {self.id}: '
                f'reserved={self.reserved_count}, sold={self.sold_count}'
            )
        if self.reserved_count + self.sold_count > self.total_capacity:
            raise InventoryInvariantViolation(
                f'Oversubscribed inventory {self.id}: reserved={self.reserved_count} + '
                f'sold={self.sold_count} > capacity={self.total_capacity}'
            )

    @Logger.io
    def hold(self, *, quantity: int, now: datetime) -> 'Inventory':
        if quantity > self.available:
            raise InsufficientInventoryError(available=max(self.available, 0), requested=quantity)
        held = attrs.evolve(self, reserved_count=self.reserved_count + quantity, updated_at=now)
        held.assert_invariant()
        return held

    @Logger.io
    def confirm_sale(self, *, quantity: int, now: datetime) -> 'Inventory':
        sold = attrs.evolve(
            self,
            reserved_count=self.reserved_count - quantity,
            sold_count=self.sold_count + quantity,
            updated_at=now,
        )
        sold.assert_invariant()
        return sold

    @Logger.io
    def give_back(self, *, quantity: int, now: datetime) -> 'Inventory':
        released = attrs.evolve(self, reserved_count=self.reserved_count - quantity, updated_at=now)
        released.assert_invariant()
        return released
