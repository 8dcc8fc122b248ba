"""
Trip model: a scheduled departure and its seat inventory.

Key design decisions:
- `available_seats` is denormalized (avoids counting booked seats on every read)
  and must always equal total_seats minus the trip's booked seat entries
- `version` column is bumped on every inventory change so counter updates can
  compare-and-set against the value read in the same transaction
- Trips are created by operators elsewhere; the ledger only moves the counter
"""

import enum

from sqlalchemy import Column, Integer, String, DateTime, Numeric, CheckConstraint, Index
from sqlalchemy.orm import relationship

from bus_booking.db.base import Base, TimestampMixin


class TripStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Trip(Base, TimestampMixin):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)
    source = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    departure_time = Column(DateTime(timezone=True), nullable=False)
    arrival_time = Column(DateTime(timezone=True), nullable=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=TripStatus.SCHEDULED.value)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    bookings = relationship("Booking", back_populates="trip", lazy="raise")

    __table_args__ = (
        CheckConstraint("available_seats >= 0", name="check_available_seats_non_negative"),
        CheckConstraint("total_seats > 0", name="check_total_seats_positive"),
        CheckConstraint("available_seats <= total_seats", name="check_available_lte_total"),
        CheckConstraint(
            "status IN ('scheduled', 'cancelled', 'completed')", name="check_trip_status"
        ),
        Index("ix_trips_departure_time", "departure_time"),
    )

    def __repr__(self) -> str:
        return (
            f"<Trip(id={self.id}, {self.source}->{self.destination}, "
            f"available={self.available_seats}/{self.total_seats})>"
        )
