"""Reservation Application DTOs"""

from settlement_engine.service.reservation.app.dto.reservation_dto import (
    ConsumeOutcome,
    ConsumeResult,
    ReleaseResult,
    ReservationDetail,
)

__all__ = ['ConsumeOutcome', 'ConsumeResult', 'ReleaseResult', 'ReservationDetail']
