"""Application layer interfaces (Ports)"""

from settlement_engine.service.reservation.app.interface.i_inventory_repo import IInventoryRepo
from settlement_engine.service.reservation.app.interface.i_reservation_repo import (
    IReservationRepo,
)
from settlement_engine.service.reservation.app.interface.i_ticket_repo import ITicketRepo

__all__ = ['IInventoryRepo', 'IReservationRepo', 'ITicketRepo']
