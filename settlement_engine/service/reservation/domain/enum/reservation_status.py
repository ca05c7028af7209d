from enum import StrEnum


class ReservationStatus(StrEnum):
    PENDING = 'pending'
    CONSUMED = 'consumed'
    EXPIRED = 'expired'
    CANCELLED = 'cancelled'

    @property
    def is_terminal(self) -> bool:
        return self is not ReservationStatus.PENDING


RELEASE_STATUSES = frozenset({ReservationStatus.EXPIRED, ReservationStatus.CANCELLED})
