from datetime import datetime
import secrets
from typing import List, Optional
from uuid import UUID

import attrs
from uuid_utils.compat import uuid7

from settlement_engine.service.reservation.domain.entity.reservation_entity import Reservation
from settlement_engine.service.reservation.domain.enum.ticket_status import TicketStatus


@attrs.define
class Ticket:
    id: UUID
    reservation_id: UUID
    event_id: UUID
    user_id: UUID
    token: str  # Unguessable seed for the QR payload
    price_cents: int
    issued_at: datetime
    ticket_type_id: Optional[UUID] = None
    status: TicketStatus = TicketStatus.ACTIVE

    @classmethod
    def issue_for(cls, *, reservation: Reservation, now: datetime) -> List['Ticket']:
        return [
            cls(
                id=uuid7(),
                reservation_id=reservation.id,
                event_id=reservation.event_id,
                ticket_type_id=reservation.ticket_type_id,
                user_id=reservation.user_id,
                token=secrets.token_urlsafe(32),
                price_cents=reservation.unit_price_cents,
                issued_at=now,
            )
            for _ in range(reservation.quantity)
        ]
