"""
Pydantic schemas for the movie/showtime catalog and seat maps.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, HttpUrl, field_validator

from app.db.base import as_utc


class SeatIn(BaseModel):
    seat_number: str = Field(..., min_length=1, max_length=10)
    row: str = Field(..., min_length=1, max_length=5)


class SeatResponse(BaseModel):
    seat_number: str
    row: str

    model_config = {"from_attributes": True}


class ShowtimeCreate(BaseModel):
    start_time: datetime
    end_time: datetime
    capacity: int = Field(..., gt=0, le=10000)
    price: float = Field(..., ge=0)
    seats: list[SeatIn] = Field(default_factory=list)


class ShowtimeUpsert(BaseModel):
    """Edits the showtime with `id`, or adds a new one when `id` is omitted.
    Leaving `seats` out keeps the current seat map."""

    id: Optional[int] = None
    start_time: datetime
    end_time: datetime
    capacity: int = Field(..., gt=0, le=10000)
    price: float = Field(..., ge=0)
    seats: Optional[list[SeatIn]] = None


class ShowtimeResponse(BaseModel):
    id: int
    movie_id: int
    start_time: datetime
    end_time: datetime
    capacity: int
    price: float

    model_config = {"from_attributes": True}

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class MovieCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    image_url: HttpUrl
    showtimes: list[ShowtimeCreate] = Field(default_factory=list)


class MovieUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    image_url: Optional[HttpUrl] = None
    showtimes: Optional[list[ShowtimeUpsert]] = None


class MovieResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    image_url: str
    created_by: int
    showtimes: list[ShowtimeResponse] = []

    model_config = {"from_attributes": True}


class MovieListResponse(BaseModel):
    movies: list[MovieResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False


class SeatMapUpdate(BaseModel):
    seats: list[SeatIn] = Field(..., min_length=1)


class AvailableSeatsResponse(BaseModel):
    showtime_id: int
    available_seats: list[SeatResponse]
