"""
Showtime endpoints: listing, seat availability and seat map replacement.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.security import Principal, get_current_principal, require_admin
from app.db.session import Database, get_db
from app.schemas.movie import AvailableSeatsResponse, SeatMapUpdate, SeatResponse, ShowtimeResponse
from app.services.catalog_service import list_showtimes
from app.services.seat_service import list_available, replace_seats
from app.services.cache_service import invalidate_movie_cache

router = APIRouter(prefix="/showtimes", tags=["Showtimes"])


@router.get("", response_model=list[ShowtimeResponse])
async def list_showtimes_endpoint(
    on_date: Optional[date] = Query(None, alias="date"),
    db: Database = Depends(get_db),
):
    """All showtimes ordered by start time, optionally for one day (YYYY-MM-DD)."""
    return await list_showtimes(db, on_date)


@router.get("/{showtime_id}/seats", response_model=AvailableSeatsResponse)
async def available_seats_endpoint(
    showtime_id: int,
    _: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
):
    """
    Seats of the showtime not held by any booking.
    Always read from the database; the answer is a snapshot and may be stale
    by the time a reservation is submitted.
    """
    seats = await list_available(db, showtime_id)
    return AvailableSeatsResponse(
        showtime_id=showtime_id,
        available_seats=[SeatResponse.model_validate(s) for s in seats],
    )


@router.put("/{showtime_id}/seats", response_model=list[SeatResponse])
async def replace_seats_endpoint(
    showtime_id: int,
    seat_map: SeatMapUpdate,
    _: Principal = Depends(require_admin),
    db: Database = Depends(get_db),
):
    """Regenerate the seat map of a showtime with no bookings. Admin only."""
    seats = await replace_seats(db, showtime_id, seat_map.seats)
    await invalidate_movie_cache()
    return seats
