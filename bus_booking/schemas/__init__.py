from bus_booking.schemas.booking import (
    BookingCreate, BookingRead, SeatCancelRequest, SeatRead, SeatSelection,
)
from bus_booking.schemas.trip import InventoryReport, TripSeatMap

__all__ = [
    "BookingCreate", "BookingRead", "SeatCancelRequest", "SeatRead", "SeatSelection",
    "InventoryReport", "TripSeatMap",
]
