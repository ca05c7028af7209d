"""
Database Models

Import all models here to ensure they are registered with SQLAlchemy
"""

from settlement_engine.service.reservation.driven_adapter.model.inventory_model import (
    InventoryModel,
)
from settlement_engine.service.reservation.driven_adapter.model.reservation_model import (
    ReservationModel,
)
from settlement_engine.service.reservation.driven_adapter.model.ticket_model import TicketModel

__all__ = ['InventoryModel', 'ReservationModel', 'TicketModel']
