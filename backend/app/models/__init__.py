from app.models.user import User
from app.models.movie import Movie
from app.models.showtime import Showtime, Seat
from app.models.booking import Booking, BookingSeat

__all__ = ["User", "Movie", "Showtime", "Seat", "Booking", "BookingSeat"]
