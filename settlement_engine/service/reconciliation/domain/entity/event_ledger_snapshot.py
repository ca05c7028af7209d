from typing import List, Optional
from uuid import UUID

import attrs


@attrs.define(frozen=True)
class ReservationLedgerRow:
    """A reservation that is consumed or has tickets pointing at it"""

    id: UUID
    status: str
    quantity: int
    unit_price_cents: int
    ticket_count: int


@attrs.define(frozen=True)
class PaymentLedgerRow:
    id: UUID
    provider_payment_id: str
    amount_cents: int
    reservation_id: Optional[UUID] = None


@attrs.define(frozen=True)
class EventLedgerSnapshot:
    """Everything the auditor needs about one event, read in a single transaction"""

    event_id: UUID
    sold_count: int  # Sum over the event's inventory rows
    ticket_count: int  # Active tickets
    reservations: List[ReservationLedgerRow] = attrs.field(factory=list)
    payments: List[PaymentLedgerRow] = attrs.field(factory=list)  # Succeeded only
