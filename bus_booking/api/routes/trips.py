"""
Trip seat availability endpoints with Redis caching on the seat map.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bus_booking.db.session import get_db
from bus_booking.schemas.trip import InventoryReport, TripSeatMap
from bus_booking.services.trip_service import check_inventory, get_trip, get_trip_seat_map
from bus_booking.services.cache_service import get_cached_seat_map, set_cached_seat_map
from bus_booking.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/trips", tags=["Trips"])


@router.get("/{trip_id}/seats", response_model=TripSeatMap)
async def trip_seat_map(
    trip_id: int,
    db: AsyncSession = Depends(get_db),
):
    """
    Seats already taken on a trip.
    Cached in Redis under the trip's inventory version, so any booking or
    cancellation moves readers to a new key.
    """
    # Version first: a map built after this read is never older than its key
    trip = await get_trip(db, trip_id)
    version = trip.version

    cached = await get_cached_seat_map(trip_id, version)
    if cached:
        logger.info("seat_map_cache_hit", trip_id=trip_id, version=version)
        cached["cached"] = True
        return TripSeatMap(**cached)

    seat_map = await get_trip_seat_map(db, trip_id)
    await set_cached_seat_map(trip_id, version, seat_map.model_dump())
    return seat_map


@router.get("/{trip_id}/inventory", response_model=InventoryReport)
async def trip_inventory(
    trip_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Check that the available-seat counter matches the booked seats. Never cached."""
    return await check_inventory(db, trip_id)
