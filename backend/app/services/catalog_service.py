"""
Movie and showtime catalog.

Only what seat availability depends on lives here: a showtime is created with
an explicit seat map, and movies/showtimes that still hold bookings cannot be
deleted out from under them.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

from sqlalchemy import delete, exists, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from app.core.exceptions import Conflict, InvalidArgument, NotFound
from app.core.logging import get_logger
from app.db.base import as_utc
from app.db.session import Database, Transaction
from app.models.booking import Booking
from app.models.movie import Movie
from app.models.showtime import Seat, Showtime
from app.schemas.movie import MovieCreate, MovieUpdate, ShowtimeCreate, ShowtimeUpsert
from app.services.seat_service import regenerate_seats, seat_count, validate_seat_map

logger = get_logger(__name__)


def _checked_window(start_time: datetime, end_time: datetime) -> tuple[datetime, datetime]:
    start, end = as_utc(start_time), as_utc(end_time)
    if start >= end:
        raise InvalidArgument(code="invalid-showtime-window", message="start_time must be before end_time")
    return start, end


def _build_showtime(data: Union[ShowtimeCreate, ShowtimeUpsert]) -> Showtime:
    start, end = _checked_window(data.start_time, data.end_time)
    seats = validate_seat_map(data.seats or [], data.capacity)
    return Showtime(
        start_time=start,
        end_time=end,
        capacity=data.capacity,
        price=data.price,
        seats=[Seat(seat_number=s.seat_number, row=s.row) for s in seats],
    )


async def _get_movie(tx: Transaction, movie_id: int, with_showtimes: bool = True) -> Movie:
    query = select(Movie).where(Movie.id == movie_id)
    if with_showtimes:
        query = query.options(selectinload(Movie.showtimes))
    movie = await tx.scalar(query)
    if movie is None:
        raise NotFound(code="movie", message=f"Movie {movie_id} not found")
    return movie


async def create_movie(db: Database, movie_data: MovieCreate, user_id: int) -> Movie:
    """Create a movie together with its showtimes and their seats."""
    showtimes = [_build_showtime(item) for item in movie_data.showtimes]

    try:
        async with db.transaction() as tx:
            if await tx.scalar(select(Movie.id).where(Movie.name == movie_data.name)):
                raise Conflict(code="movie-exists", message="Movie with this name already exists")

            movie = Movie(
                name=movie_data.name,
                description=movie_data.description,
                image_url=str(movie_data.image_url),
                created_by=user_id,
                showtimes=showtimes,
            )
            tx.add(movie)
            await tx.flush()
            movie = await _get_movie(tx, movie.id)
    except IntegrityError as exc:
        raise Conflict(code="movie-exists", message="Movie with this name already exists") from exc

    logger.info(
        "movie_created",
        movie_id=movie.id,
        name=movie.name,
        showtimes=len(showtimes),
        seats=sum(len(s.seats) for s in showtimes),
    )
    return movie


async def get_movie(db: Database, movie_id: int) -> Movie:
    async with db.transaction() as tx:
        return await _get_movie(tx, movie_id)


async def list_movies(db: Database, page: int = 1, page_size: int = 20) -> tuple[list[Movie], int]:
    """List movies with pagination, each with its showtimes."""
    async with db.transaction() as tx:
        total = await tx.scalar(select(func.count(Movie.id)))
        movies = await tx.scalars(
            select(Movie)
            .options(selectinload(Movie.showtimes))
            .order_by(Movie.id.asc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
    return movies, total


async def _upsert_showtime(tx: Transaction, movie: Movie, data: ShowtimeUpsert) -> None:
    if data.id is None:
        movie.showtimes.append(_build_showtime(data))
        await tx.flush()
        return

    showtime = next((s for s in movie.showtimes if s.id == data.id), None)
    if showtime is None:
        raise NotFound(code="showtime", message=f"Showtime {data.id} not found for movie {movie.id}")

    showtime.start_time, showtime.end_time = _checked_window(data.start_time, data.end_time)
    showtime.capacity = data.capacity
    showtime.price = data.price
    await tx.flush()

    if data.seats is not None:
        await regenerate_seats(tx, showtime, data.seats)
    elif await seat_count(tx, showtime.id) > showtime.capacity:
        raise InvalidArgument(
            code="seats-exceed-capacity",
            message=f"Existing seats exceed capacity {showtime.capacity}",
        )


async def update_movie(db: Database, movie_id: int, movie_data: MovieUpdate) -> Movie:
    """
    Update movie fields and upsert its showtimes. A showtime with an id is
    edited in place (its seat map is regenerated when seats are given), one
    without an id is added.
    """
    changes = movie_data.model_dump(exclude_unset=True)
    showtimes = movie_data.showtimes or []
    changes.pop("showtimes", None)
    for item in showtimes:
        _checked_window(item.start_time, item.end_time)
    if "image_url" in changes:
        if changes["image_url"] is None:
            raise InvalidArgument(message="image_url cannot be empty")
        changes["image_url"] = str(changes["image_url"])
    if "name" in changes and changes["name"] is None:
        raise InvalidArgument(message="name cannot be empty")

    try:
        async with db.transaction() as tx:
            movie = await _get_movie(tx, movie_id)
            if "name" in changes and changes["name"] != movie.name:
                clash = await tx.scalar(select(Movie.id).where(Movie.name == changes["name"]))
                if clash:
                    raise Conflict(code="movie-exists", message="Movie with this name already exists")
            for key, value in changes.items():
                setattr(movie, key, value)
            await tx.flush()
            for item in showtimes:
                await _upsert_showtime(tx, movie, item)
    except IntegrityError as exc:
        raise Conflict(code="movie-exists", message="Movie with this name already exists") from exc

    logger.info("movie_updated", movie_id=movie_id, fields=sorted(changes), showtimes=len(showtimes))
    return movie


async def delete_movie(db: Database, movie_id: int) -> None:
    """
    Delete a movie with its showtimes and seats.
    Refused while any of its showtimes still has bookings.
    """
    async with db.transaction() as tx:
        await _get_movie(tx, movie_id, with_showtimes=False)

        showtime_ids = select(Showtime.id).where(Showtime.movie_id == movie_id)
        has_bookings = await tx.scalar(
            select(exists().where(Booking.showtime_id.in_(showtime_ids)))
        )
        if has_bookings:
            raise Conflict(
                code="movie-has-bookings",
                message="Cannot delete a movie whose showtimes have bookings",
            )

        await tx.execute(delete(Seat).where(Seat.showtime_id.in_(showtime_ids)))
        await tx.execute(delete(Showtime).where(Showtime.movie_id == movie_id))
        await tx.execute(delete(Movie).where(Movie.id == movie_id))

    logger.info("movie_deleted", movie_id=movie_id)


async def get_movie_showtimes(db: Database, movie_id: int) -> list[Showtime]:
    async with db.transaction() as tx:
        movie = await _get_movie(tx, movie_id)
        return list(movie.showtimes)


async def list_showtimes(db: Database, on_date: Optional[date] = None) -> list[Showtime]:
    """All showtimes ordered by start time, optionally limited to one (UTC) day."""
    query = select(Showtime).order_by(Showtime.start_time.asc(), Showtime.id.asc())
    if on_date is not None:
        day_start = datetime.combine(on_date, time.min, tzinfo=timezone.utc)
        query = query.where(
            Showtime.start_time >= day_start,
            Showtime.start_time < day_start + timedelta(days=1),
        )
    async with db.transaction() as tx:
        return await tx.scalars(query)
