class CustomBaseError(Exception):
    """Base class for all custom exceptions - controls logging behavior in @Logger.io"""

    def __init__(self, message: str, status_code: int = 500) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class DomainError(CustomBaseError):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message, status_code)


class ForbiddenError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 403)


class NotFoundError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 404)


class ConflictError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class GoneError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 410)


class AuthenticationError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 401)


class ServiceUnavailableError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 503)


# ========== Inventory / Reservation ==========


class InsufficientInventoryError(ConflictError):
    def __init__(self, *, available: int, requested: int) -> None:
        self.available = available
        self.requested = requested
        message = 'Sold out' if available <= 0 else f'Only {available} left'
        super().__init__(message)


class InventoryNotFoundError(NotFoundError):
    def __init__(self, message: str = 'Inventory not found') -> None:
        super().__init__(message)


class InventoryInvariantViolation(CustomBaseError):
    """Counters left the reserved + sold <= capacity envelope; always a bug."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 500)


class ReservationNotFoundError(NotFoundError):
    def __init__(self, message: str = 'Reservation not found') -> None:
        super().__init__(message)


class ReservationExpiredError(GoneError):
    def __init__(self, message: str = 'Your hold expired, please try again') -> None:
        super().__init__(message)


# ========== Settlement ==========


class MalformedExternalEventError(DomainError):
    """Payload cannot be mapped to a reservation; acknowledged, never retried."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 400)


class InvalidSignatureError(DomainError):
    def __init__(self, message: str = 'Invalid webhook signature') -> None:
        super().__init__(message, 400)


class PaymentProviderError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 502)
