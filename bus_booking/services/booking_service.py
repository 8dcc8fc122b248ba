"""
Read-only booking queries.

Each query loads bookings and their seat rows in one statement (joined
eager load), so a cancellation committing halfway through a read can never
show up as half the seats flipped.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from bus_booking.core.errors import BookingNotFoundError
from bus_booking.core.logging import get_logger
from bus_booking.models.booking import Booking, BookingSeat, SeatStatus
from bus_booking.schemas.booking import BookingRead
from bus_booking.services.user_service import require_user

logger = get_logger(__name__)


def _bookings_with_seats():
    return select(Booking).options(joinedload(Booking.seats))


async def get_booking_history(db: AsyncSession, user_id: int) -> list[BookingRead]:
    """All bookings for a user, cancelled ones included, newest first."""
    await require_user(db, user_id)
    result = await db.execute(
        _bookings_with_seats()
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    bookings = result.unique().scalars().all()
    logger.debug("booking_history_loaded", user_id=user_id, count=len(bookings))
    return [BookingRead.model_validate(b) for b in bookings]


async def get_current_bookings(db: AsyncSession, user_id: int) -> list[BookingRead]:
    """Bookings that still hold at least one booked seat."""
    await require_user(db, user_id)
    result = await db.execute(
        _bookings_with_seats()
        .where(
            Booking.user_id == user_id,
            Booking.seats.any(BookingSeat.status == SeatStatus.BOOKED.value),
        )
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return [BookingRead.model_validate(b) for b in result.unique().scalars().all()]


async def get_booking(db: AsyncSession, booking_id: int, user_id: int) -> BookingRead:
    result = await db.execute(
        _bookings_with_seats().where(Booking.id == booking_id, Booking.user_id == user_id)
    )
    booking = result.unique().scalar_one_or_none()
    if booking is None:
        raise BookingNotFoundError(booking_id)
    return BookingRead.model_validate(booking)
