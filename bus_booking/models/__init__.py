from bus_booking.models.user import User
from bus_booking.models.trip import Trip, TripStatus
from bus_booking.models.booking import Booking, BookingSeat, BookingStatus, PaymentStatus, SeatStatus

__all__ = [
    "User",
    "Trip", "TripStatus",
    "Booking", "BookingSeat", "BookingStatus", "PaymentStatus", "SeatStatus",
]
