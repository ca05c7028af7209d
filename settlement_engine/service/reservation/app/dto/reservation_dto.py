"""Reservation Manager result DTOs"""

from enum import StrEnum
from typing import List

import attrs

from settlement_engine.service.reservation.domain.entity.reservation_entity import Reservation
from settlement_engine.service.reservation.domain.entity.ticket_entity import Ticket


class ConsumeOutcome(StrEnum):
    CONSUMED = 'consumed'
    ALREADY_CONSUMED = 'already_consumed'
    EXPIRED = 'expired'  # was already expired/cancelled before this call
    LAPSED = 'lapsed'  # was pending past its deadline; released by this call


@attrs.define(frozen=True)
class ConsumeResult:
    """
    Outcome of Consume.

    LAPSED carries a state change (inventory reclaimed) that the caller must
    commit before reporting the expiry.
    """

    outcome: ConsumeOutcome
    reservation: Reservation
    tickets: List[Ticket] = attrs.field(factory=list)

    @property
    def succeeded(self) -> bool:
        return self.outcome in (ConsumeOutcome.CONSUMED, ConsumeOutcome.ALREADY_CONSUMED)


@attrs.define(frozen=True)
class ReleaseResult:
    """released=False means the reservation was already terminal (no-op)."""

    reservation: Reservation
    released: bool


@attrs.define(frozen=True)
class ReservationDetail:
    reservation: Reservation
    tickets: List[Ticket] = attrs.field(factory=list)
