"""
Booking endpoints with concurrency-safe seat reservation.
"""

from fastapi import APIRouter, Depends, status

from app.core.security import get_current_user_id
from app.db.session import Database, get_db
from app.schemas.booking import BookingCreate, ReservationResponse, BookingResponse, BookingCancelResponse
from app.services.booking_service import reserve, cancel_booking, get_user_bookings

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    user_id: int = Depends(get_current_user_id),
    db: Database = Depends(get_db),
):
    """
    Book specific seats of a showtime.

    All requested seats are booked in one transaction or none are. If any seat
    is already held, or another request wins the race for it, the response is
    409 and the client should re-fetch availability before retrying.
    """
    return await reserve(
        db,
        booking_data.showtime_id,
        user_id,
        booking_data.seat_numbers,
        booking_data.total_price,
    )


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Database = Depends(get_db),
):
    """Cancel a booking before its showtime starts and release its seats."""
    await cancel_booking(db, booking_id, user_id)
    return BookingCancelResponse(message="Booking cancelled successfully", booking_id=booking_id)


@router.get("", response_model=list[BookingResponse])
async def list_user_bookings(
    user_id: int = Depends(get_current_user_id),
    db: Database = Depends(get_db),
):
    """Get all bookings for the authenticated user."""
    return await get_user_bookings(db, user_id)
