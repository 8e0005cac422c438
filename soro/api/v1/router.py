"""
API v1 router setup
All routes require a JWT bearer token
"""
from fastapi import APIRouter

from soro.api.v1 import availability, bookings, notifications

api_v1_router = APIRouter()

api_v1_router.include_router(
    availability.router,
    prefix="/availability",
    tags=["Availability"]
)

api_v1_router.include_router(
    bookings.router,
    prefix="/bookings",
    tags=["Bookings"]
)

api_v1_router.include_router(
    notifications.router,
    prefix="/notifications",
    tags=["Notifications"]
)
