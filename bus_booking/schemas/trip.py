"""
Pydantic schemas for trip seat availability.
"""

from pydantic import BaseModel


class TripSeatMap(BaseModel):
    trip_id: int
    total_seats: int
    available_seats: int
    unavailable_seats: list[int]
    cached: bool = False


class InventoryReport(BaseModel):
    trip_id: int
    total_seats: int
    available_seats: int
    booked_seats: int
    consistent: bool
