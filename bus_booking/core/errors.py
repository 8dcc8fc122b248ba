"""
Typed failures raised by the seat ledger and booking queries.

Every error carries an ``ErrorKind`` so callers can tell a missing resource
from a seat conflict, a no-op cancellation or a storage outage without
parsing messages. The HTTP layer maps kinds to status codes in
``bus_booking.api.errors``.
"""

from enum import Enum
from typing import Iterable, Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    NOTHING_TO_CANCEL = "nothing_to_cancel"
    INVALID = "invalid"
    TRANSIENT = "transient"
    INTERNAL = "internal"


class BookingError(Exception):
    """Base class for every domain and storage failure of the ledger."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# Not found

class NotFoundError(BookingError):
    kind = ErrorKind.NOT_FOUND


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class TripNotFoundError(NotFoundError):
    def __init__(self, trip_id: int):
        self.trip_id = trip_id
        super().__init__(f"Trip {trip_id} not found")


class BookingNotFoundError(NotFoundError):
    """Also raised when the booking exists but belongs to someone else."""

    def __init__(self, booking_id: int):
        self.booking_id = booking_id
        super().__init__("Booking not found or unauthorized")


# Conflicts

class SeatUnavailableError(BookingError):
    kind = ErrorKind.CONFLICT

    def __init__(self, seat_numbers: Iterable[int] = (), message: Optional[str] = None):
        self.seat_numbers = sorted(seat_numbers)
        if message is None:
            taken = ", ".join(str(n) for n in self.seat_numbers)
            message = f"Seats already booked: {taken}"
        super().__init__(message)


class TripNotBookableError(BookingError):
    kind = ErrorKind.CONFLICT

    def __init__(self, trip_id: int, status: str):
        self.trip_id = trip_id
        self.status = status
        super().__init__(f"Trip {trip_id} is {status} and cannot be booked")


# Requests that change nothing

class NoSeatsToCancelError(BookingError):
    kind = ErrorKind.NOTHING_TO_CANCEL

    def __init__(self, message: str = "No valid seats to cancel"):
        super().__init__(message)


class InvalidSeatSelectionError(BookingError):
    kind = ErrorKind.INVALID


# Storage

class StorageError(BookingError):
    """The transaction could not be committed; nothing was written."""

    kind = ErrorKind.TRANSIENT


class ConcurrentUpdateError(StorageError):
    def __init__(self, trip_id: int):
        self.trip_id = trip_id
        super().__init__(
            f"Trip {trip_id} inventory changed during the operation. Please try again."
        )


class InventoryInconsistencyError(BookingError):
    kind = ErrorKind.INTERNAL
