"""Reservation Domain Enums"""

from settlement_engine.service.reservation.domain.enum.reservation_status import (
    RELEASE_STATUSES,
    ReservationStatus,
)
from settlement_engine.service.reservation.domain.enum.ticket_status import TicketStatus

__all__ = ['RELEASE_STATUSES', 'ReservationStatus', 'TicketStatus']
