"""
Trip seat availability reads.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bus_booking.core.errors import TripNotFoundError
from bus_booking.core.logging import get_logger
from bus_booking.models.booking import BookingSeat, SeatStatus
from bus_booking.models.trip import Trip
from bus_booking.schemas.trip import InventoryReport, TripSeatMap

logger = get_logger(__name__)


async def get_trip(db: AsyncSession, trip_id: int) -> Trip:
    result = await db.execute(select(Trip).where(Trip.id == trip_id))
    trip = result.scalar_one_or_none()

    if not trip:
        raise TripNotFoundError(trip_id)
    return trip


async def get_trip_seat_map(db: AsyncSession, trip_id: int) -> TripSeatMap:
    """Seat numbers currently held on a trip, for the seat picker."""
    trip = await get_trip(db, trip_id)
    result = await db.execute(
        select(BookingSeat.seat_number)
        .where(BookingSeat.trip_id == trip_id, BookingSeat.status == SeatStatus.BOOKED.value)
        .order_by(BookingSeat.seat_number)
    )
    return TripSeatMap(
        trip_id=trip.id,
        total_seats=trip.total_seats,
        available_seats=trip.available_seats,
        unavailable_seats=list(result.scalars().all()),
    )


async def check_inventory(db: AsyncSession, trip_id: int) -> InventoryReport:
    """
    Compare the trip counter with its booked seat rows.

    A mismatch means some write path broke the ledger invariant; it is
    logged loudly but not repaired here.
    """
    trip = await get_trip(db, trip_id)
    booked = (
        await db.execute(
            select(func.count(BookingSeat.id)).where(
                BookingSeat.trip_id == trip_id,
                BookingSeat.status == SeatStatus.BOOKED.value,
            )
        )
    ).scalar_one()

    consistent = trip.available_seats == trip.total_seats - booked
    if not consistent:
        logger.error(
            "inventory_mismatch",
            trip_id=trip_id,
            total=trip.total_seats,
            available=trip.available_seats,
            booked=booked,
        )

    return InventoryReport(
        trip_id=trip.id,
        total_seats=trip.total_seats,
        available_seats=trip.available_seats,
        booked_seats=booked,
        consistent=consistent,
    )
