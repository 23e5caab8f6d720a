"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from app.api.routes import auth, movies, showtimes, bookings, admin

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(movies.router)
api_router.include_router(showtimes.router)
api_router.include_router(bookings.router)
api_router.include_router(admin.router)
