"""
Pydantic schemas for booking-related request/response validation.

`SeatNumbers` is the single definition of a valid seat selection; the HTTP
request bodies and the seat ledger both validate against it.
"""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field

from bus_booking.models.booking import BookingStatus, PaymentStatus, SeatStatus


def _unique_seats(seat_numbers: list[int]) -> list[int]:
    if len(set(seat_numbers)) != len(seat_numbers):
        raise ValueError("Seat numbers must be unique")
    return seat_numbers


SeatNumber = Annotated[int, Field(gt=0)]
SeatNumbers = Annotated[list[SeatNumber], Field(min_length=1), AfterValidator(_unique_seats)]


class SeatSelection(BaseModel):
    seat_numbers: SeatNumbers


class BookingCreate(BaseModel):
    trip_id: int
    seat_numbers: SeatNumbers


class SeatCancelRequest(BaseModel):
    # Unknown or already cancelled seat numbers are ignored by the ledger
    seat_numbers: list[int] = Field(..., min_length=1)


class SeatRead(BaseModel):
    seat_number: int
    status: SeatStatus

    model_config = {"from_attributes": True}


class BookingRead(BaseModel):
    id: int
    user_id: int
    trip_id: int
    seats: list[SeatRead]
    booking_status: BookingStatus
    payment_status: PaymentStatus
    created_at: datetime

    model_config = {"from_attributes": True}

    @property
    def booked_seat_numbers(self) -> list[int]:
        return [seat.seat_number for seat in self.seats if seat.status == SeatStatus.BOOKED]
