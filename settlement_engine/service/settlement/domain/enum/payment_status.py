from enum import StrEnum


class PaymentStatus(StrEnum):
    SUCCEEDED = 'succeeded'
