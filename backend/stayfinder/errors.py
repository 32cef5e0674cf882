"""Domain error taxonomy.

Every error raised by the services layer derives from ``DomainError`` and
carries the HTTP status it maps to at the request boundary. The handlers in
``stayfinder.api.errors`` render them into the response envelope.
"""

from fastapi import status


class DomainError(Exception):
    """Base class for recoverable, client-facing failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request could not be processed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class Forbidden(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized to perform this action"


class InvalidState(DomainError):
    default_message = "Operation not allowed in the current state"


class InvalidStateTransition(InvalidState):
    """A booking status change that the status graph does not allow."""

    def __init__(self, current: str, target: str, message: str | None = None) -> None:
        self.current = current
        self.target = target
        super().__init__(message or f"Cannot move booking from {current} to {target}")


class InvalidDateRange(DomainError):
    default_message = "Check-out date must be after check-in date"


class CapacityExceeded(DomainError):
    def __init__(self, max_guests: int) -> None:
        self.max_guests = max_guests
        super().__init__(f"Property can accommodate maximum {max_guests} guests")


class DateConflict(DomainError):
    default_message = "Selected dates are not available"
