"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from bus_booking.api.routes import bookings, trips

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(trips.router)
api_router.include_router(bookings.router)
