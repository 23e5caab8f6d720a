"""
Seat inventory for a showtime.

A seat is available when no BookingSeat row references it. Listing runs as a
plain snapshot read and takes no locks; only the reservation transaction in
booking_service decides who gets a seat.
"""

from collections import Counter
from typing import Iterable

from sqlalchemy import delete, exists, func, select

from app.core.exceptions import Conflict, InvalidArgument, NotFound
from app.core.logging import get_logger
from app.db.session import Database, Transaction
from app.models.booking import BookingSeat
from app.models.showtime import Seat, Showtime
from app.schemas.movie import SeatIn

logger = get_logger(__name__)


def _is_booked():
    return exists().where(BookingSeat.seat_id == Seat.id)


async def get_showtime(tx: Transaction, showtime_id: int) -> Showtime:
    showtime = await tx.get(Showtime, showtime_id)
    if showtime is None:
        raise NotFound(code="showtime", message=f"Showtime {showtime_id} not found")
    return showtime


def validate_seat_map(seats: Iterable[SeatIn], capacity: int) -> list[SeatIn]:
    """Reject duplicate seat numbers and seat maps larger than capacity."""
    seats = list(seats)
    counts = Counter(seat.seat_number for seat in seats)
    duplicates = sorted(n for n, c in counts.items() if c > 1)
    if duplicates:
        raise InvalidArgument(
            code="duplicate-seat-numbers",
            message="Duplicate seat numbers are not allowed",
            details={"seat_numbers": duplicates},
        )
    if len(seats) > capacity:
        raise InvalidArgument(
            code="seats-exceed-capacity",
            message=f"{len(seats)} seats exceed capacity {capacity}",
        )
    return seats


async def available_seats(tx: Transaction, showtime_id: int) -> list[Seat]:
    await get_showtime(tx, showtime_id)
    return await tx.scalars(
        select(Seat)
        .where(Seat.showtime_id == showtime_id, ~_is_booked())
        .order_by(Seat.row, Seat.id)
    )


async def list_available(db: Database, showtime_id: int) -> list[Seat]:
    """Seats of the showtime that no booking currently holds."""
    async with db.transaction() as tx:
        seats = await available_seats(tx, showtime_id)
    logger.debug("available_seats_listed", showtime_id=showtime_id, count=len(seats))
    return seats


async def seat_count(tx: Transaction, showtime_id: int) -> int:
    return await tx.scalar(select(func.count(Seat.id)).where(Seat.showtime_id == showtime_id))


async def regenerate_seats(tx: Transaction, showtime: Showtime, seats: Iterable[SeatIn]) -> list[Seat]:
    """
    Swap the seat map of `showtime` inside the caller's unit of work.
    Refused while any seat of the showtime is held by a booking, since the
    booking's seat links would otherwise point at seats that no longer exist.
    """
    seats = validate_seat_map(seats, showtime.capacity)

    booked = await tx.scalar(
        select(func.count(Seat.id)).where(Seat.showtime_id == showtime.id, _is_booked())
    )
    if booked:
        raise Conflict(
            code="showtime-has-bookings",
            message="Cannot replace seats while some are booked",
            details={"booked_seats": booked},
        )

    await tx.execute(delete(Seat).where(Seat.showtime_id == showtime.id))
    new_seats = [
        Seat(showtime_id=showtime.id, seat_number=s.seat_number, row=s.row) for s in seats
    ]
    tx.add_all(new_seats)
    await tx.flush()
    return new_seats


async def replace_seats(db: Database, showtime_id: int, seats: list[SeatIn]) -> list[Seat]:
    """Regenerate a showtime's seat map."""
    async with db.transaction() as tx:
        showtime = await get_showtime(tx, showtime_id)
        new_seats = await regenerate_seats(tx, showtime, seats)

    logger.info("seat_map_replaced", showtime_id=showtime_id, seats=len(new_seats))
    return new_seats
