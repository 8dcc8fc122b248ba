"""
Booking endpoints: seat reservation, cancellation and booking history.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bus_booking.db.session import get_db
from bus_booking.schemas.booking import BookingCreate, BookingRead, SeatCancelRequest
from bus_booking.services.booking_service import get_booking, get_booking_history, get_current_bookings
from bus_booking.services.seat_ledger import SeatLedger, get_seat_ledger
from bus_booking.core.security import get_current_user_id

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    user_id: int = Depends(get_current_user_id),
    ledger: SeatLedger = Depends(get_seat_ledger),
):
    """
    Book specific seats on a trip.

    Returns 409 if any requested seat is already taken; nothing is booked
    in that case.
    """
    return await ledger.create_booking(user_id, booking_data.trip_id, booking_data.seat_numbers)


@router.get("/", response_model=list[BookingRead])
async def booking_history(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """All bookings of the authenticated user, cancelled ones included."""
    return await get_booking_history(db, user_id)


@router.get("/current", response_model=list[BookingRead])
async def current_bookings(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Bookings that still hold at least one seat."""
    return await get_current_bookings(db, user_id)


@router.get("/{booking_id}", response_model=BookingRead)
async def booking_detail(
    booking_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_booking(db, booking_id, user_id)


@router.delete("/{booking_id}", response_model=BookingRead)
async def cancel_booking(
    booking_id: int,
    user_id: int = Depends(get_current_user_id),
    ledger: SeatLedger = Depends(get_seat_ledger),
):
    """Cancel a whole booking and release its seats back to the trip."""
    return await ledger.cancel_booking(booking_id, user_id)


@router.put("/{booking_id}/cancel-seats", response_model=BookingRead)
async def cancel_seats(
    booking_id: int,
    cancel_data: SeatCancelRequest,
    user_id: int = Depends(get_current_user_id),
    ledger: SeatLedger = Depends(get_seat_ledger),
):
    """
    Cancel some seats of a booking.

    Seat numbers that are not part of the booking, or already cancelled,
    are ignored. Returns 400 if none of them could be cancelled.
    """
    return await ledger.cancel_seats(booking_id, cancel_data.seat_numbers, user_id=user_id)
