"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class BookingCreate(BaseModel):
    showtime_id: int
    seat_numbers: list[str]
    total_price: float = Field(..., ge=0)


class ReservationResponse(BaseModel):
    booking_id: int
    showtime_id: int
    seat_numbers: list[str]
    total_price: float

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    id: int
    user_id: int
    username: Optional[str] = None
    showtime_id: int
    movie_name: str
    start_time: datetime
    seat_numbers: list[str]
    total_price: float
    state: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int


class ReportResponse(BaseModel):
    total_bookings: int
    total_seats_booked: int
    total_revenue: float
    revenue_by_movie: dict[str, float]

    model_config = {"from_attributes": True}
