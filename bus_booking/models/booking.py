"""
Booking model: one user's reservation of one or more seats on a trip.

Key design decisions:
- Each seat is its own row (BookingSeat) with its own status, so single seats
  can be cancelled while the booking stays alive
- booking_status is derived from the seat rows; `refresh_status` is the only
  place that derivation lives
- Bookings are never deleted: cancellation is a status transition
- A partial unique index on (trip_id, seat_number) WHERE status = 'booked'
  means two live seat rows can never hold the same physical seat
"""

import enum

from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint, CheckConstraint, Index, text
from sqlalchemy.orm import relationship

from bus_booking.db.base import Base, TimestampMixin


class SeatStatus(str, enum.Enum):
    BOOKED = "booked"
    CANCELLED = "cancelled"


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    PARTIALLY_CANCELLED = "partially_cancelled"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    booking_status = Column(String(30), nullable=False, default=BookingStatus.CONFIRMED.value)
    payment_status = Column(String(30), nullable=False, default=PaymentStatus.PENDING.value)

    user = relationship("User", back_populates="bookings", lazy="raise")
    trip = relationship("Trip", back_populates="bookings", lazy="raise")
    seats = relationship(
        "BookingSeat",
        back_populates="booking",
        lazy="selectin",
        order_by="BookingSeat.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint(
            "booking_status IN ('confirmed', 'partially_cancelled', 'cancelled')",
            name="check_booking_status",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'failed', 'refunded', 'partially_refunded')",
            name="check_payment_status",
        ),
    )

    @property
    def active_seats(self) -> list["BookingSeat"]:
        return [seat for seat in self.seats if seat.status == SeatStatus.BOOKED.value]

    def refresh_status(self) -> None:
        """Re-derive booking_status from the seat rows."""
        active = len(self.active_seats)
        if active == 0:
            self.booking_status = BookingStatus.CANCELLED.value
        elif active < len(self.seats):
            self.booking_status = BookingStatus.PARTIALLY_CANCELLED.value
        else:
            self.booking_status = BookingStatus.CONFIRMED.value

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, user={self.user_id}, trip={self.trip_id}, "
            f"status={self.booking_status})>"
        )


class BookingSeat(Base):
    __tablename__ = "booking_seats"

    id = Column(Integer, primary_key=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    # Denormalized from the booking so the live-seat index can cover the trip
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False)
    seat_number = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=SeatStatus.BOOKED.value)

    booking = relationship("Booking", back_populates="seats")

    __table_args__ = (
        UniqueConstraint("booking_id", "seat_number", name="uq_booking_seat_number"),
        CheckConstraint("seat_number > 0", name="check_seat_number_positive"),
        CheckConstraint("status IN ('booked', 'cancelled')", name="check_seat_status"),
        Index(
            "uq_booked_trip_seat",
            "trip_id",
            "seat_number",
            unique=True,
            postgresql_where=text("status = 'booked'"),
            sqlite_where=text("status = 'booked'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<BookingSeat(booking={self.booking_id}, seat={self.seat_number}, status={self.status})>"
