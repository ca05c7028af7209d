from enum import StrEnum


class IssueType(StrEnum):
    SOLD_COUNT_MISMATCH = 'sold_count_mismatch'
    ORPHAN_TICKETS = 'orphan_tickets'
    RESERVATION_TICKET_COUNT_MISMATCH = 'reservation_ticket_count_mismatch'
    PAYMENT_COUNT_MISMATCH = 'payment_count_mismatch'
    REVENUE_DISCREPANCY = 'revenue_discrepancy'
    PAYMENTS_WITHOUT_CONSUMED_RESERVATION = 'payments_without_consumed_reservation'
    CONSUMED_RESERVATIONS_WITHOUT_PAYMENT = 'consumed_reservations_without_payment'
    DUPLICATE_PAYMENTS = 'duplicate_payments'


class IssueSeverity(StrEnum):
    HIGH = 'high'
    MEDIUM = 'medium'
