from app.schemas.user import UserCreate, UserResponse, UserLogin, RoleUpdate, Token
from app.schemas.movie import (
    SeatIn, SeatResponse, ShowtimeCreate, ShowtimeUpsert, ShowtimeResponse,
    MovieCreate, MovieUpdate, MovieResponse, MovieListResponse,
    SeatMapUpdate, AvailableSeatsResponse,
)
from app.schemas.booking import (
    BookingCreate, ReservationResponse, BookingResponse,
    BookingCancelResponse, ReportResponse,
)

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "RoleUpdate", "Token",
    "SeatIn", "SeatResponse", "ShowtimeCreate", "ShowtimeUpsert", "ShowtimeResponse",
    "MovieCreate", "MovieUpdate", "MovieResponse", "MovieListResponse",
    "SeatMapUpdate", "AvailableSeatsResponse",
    "BookingCreate", "ReservationResponse", "BookingResponse",
    "BookingCancelResponse", "ReportResponse",
]
