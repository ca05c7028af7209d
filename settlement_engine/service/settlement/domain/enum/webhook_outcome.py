from enum import StrEnum


class WebhookOutcome(StrEnum):
    """Final outcome recorded in the idempotency ledger for one provider event"""

    CONSUMED = 'consumed'
    ALREADY_CONSUMED = 'already_consumed'
    RELEASED = 'released'
    ALREADY_TERMINAL = 'already_terminal'
    RESERVATION_EXPIRED = 'reservation_expired'  # Paid after the hold lapsed; needs a refund
    RESERVATION_NOT_FOUND = 'reservation_not_found'
    IGNORED = 'ignored'
    MALFORMED = 'malformed'
    DUPLICATE = 'duplicate'  # Never stored; returned for redeliveries
    ERROR = 'error'  # Never stored; processing failed and was rolled back
