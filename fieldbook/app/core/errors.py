"""
Error kinds raised by the scheduling core.

Services raise these; routers turn them into HTTP responses.
"""


class BookingError(Exception):
    """Base exception for all booking engine errors."""


class InvalidWindow(BookingError):
    """Raised when a slot grid is configured with an unusable window or cadence."""


class ValidationError(BookingError, ValueError):
    """Raised for malformed input, before any store access."""


class SlotConflict(BookingError):
    """Raised when the requested range overlaps a non-rejected reservation."""

    def __init__(self, message: str = "Slot unavailable", conflicting_ids: list[str] | None = None):
        super().__init__(message)
        self.conflicting_ids = conflicting_ids or []


class RecordStoreUnavailable(BookingError):
    """Raised when a read or write against the record store fails."""


class ReservationNotFound(BookingError):
    """Raised when a reservation id does not exist in the store."""
