"""
Seat reservation and booking lifecycle.

CONCURRENCY STRATEGY: One Isolated Transaction Per Attempt
===========================================================

Problem:
  Two users request overlapping seats for the same showtime at the same time.
  Both read "A1 is free", both insert a booking for A1.
  Result: Double booking.

Solution:
  Every reservation attempt runs inside a single unit of work
  (Database.transaction(), SERIALIZABLE by default):

  1. Load the showtime
  2. Resolve every requested seat number to a Seat of that showtime
     (all or nothing: any unknown number fails the whole request)
  3. Check no resolved seat already has a BookingSeat row
  4. INSERT the booking and one BookingSeat per seat, flush, commit

  booking_seats.seat_id is UNIQUE, so even if both transactions pass step 3
  the second INSERT/COMMIT fails with a unique violation (or a serialization
  failure under SERIALIZABLE). Both outcomes are reported as Conflict. Any
  failure rolls the whole unit back: no booking without its seats, no seat
  links without their booking.

  There is no in-process lock and no retry loop here. A Conflict is final
  for that attempt; the client re-reads availability and tries again.

Cancellation deletes the booking's seat links and then the booking in one
transaction. Availability is derived from the absence of BookingSeat rows, so
deleting them is what releases the seats.
"""

import math
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import selectinload

from app.core.exceptions import (
    BookingError,
    Conflict,
    Forbidden,
    Internal,
    InvalidArgument,
    InvalidState,
    NotFound,
)
from app.core.logging import get_logger
from app.core.metrics import record_cancellation, record_reservation, reservation_latency
from app.db.base import as_utc, utcnow
from app.db.session import Database, Transaction
from app.models.booking import SEAT_UNIQUE_CONSTRAINT, Booking, BookingSeat
from app.models.showtime import Seat, Showtime
from app.services.seat_service import get_showtime

logger = get_logger(__name__)

STATE_ACTIVE = "ACTIVE"
STATE_CONSUMED = "CONSUMED"

# serialization_failure, deadlock_detected, lock_not_available
_RETRYABLE_SQLSTATES = {"40001", "40P01", "55P03"}


@dataclass
class ReservationResult:
    booking_id: int
    showtime_id: int
    seat_numbers: list[str]
    total_price: float


@dataclass
class BookingView:
    id: int
    user_id: int
    showtime_id: int
    movie_name: str
    start_time: datetime
    total_price: float
    created_at: datetime
    state: str
    seat_numbers: list[str] = field(default_factory=list)
    username: Optional[str] = None


def _positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise InvalidArgument(message=f"{name} must be a positive integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidArgument(message=f"{name} must be a positive integer")
    if number <= 0 or (isinstance(value, float) and not value.is_integer()):
        raise InvalidArgument(message=f"{name} must be a positive integer")
    return number


def _non_negative_price(value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidArgument(message="total_price must be zero or positive")
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise InvalidArgument(message="total_price must be zero or positive")
    if not math.isfinite(price) or price < 0:
        raise InvalidArgument(message="total_price must be zero or positive")
    return price


def _normalize_seat_numbers(seat_numbers: Any) -> list[str]:
    if isinstance(seat_numbers, str) or not seat_numbers:
        raise InvalidArgument(message="seat_numbers must be a non-empty list")
    numbers = list(seat_numbers)
    if any(not isinstance(n, str) or not n.strip() for n in numbers):
        raise InvalidArgument(message="seat numbers must be non-empty strings")
    numbers = [n.strip() for n in numbers]
    duplicates = sorted(n for n, c in Counter(numbers).items() if c > 1)
    if duplicates:
        raise InvalidArgument(
            code="duplicate-seat-numbers",
            message="Each seat may be requested only once",
            details={"seat_numbers": duplicates},
        )
    return numbers


def _is_retryable(exc: DBAPIError) -> bool:
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _RETRYABLE_SQLSTATES:
        return True
    # SQLite reports lock timeouts as "database is locked"
    return "database is locked" in str(orig)


def _is_seat_taken(exc: IntegrityError) -> bool:
    """True when the violated constraint is the one-booking-per-seat rule."""
    message = str(getattr(exc, "orig", exc))
    return SEAT_UNIQUE_CONSTRAINT in message or "booking_seats.seat_id" in message


def booking_state(start_time: datetime, now: Optional[datetime] = None) -> str:
    now = as_utc(now or utcnow())
    return STATE_CONSUMED if now >= as_utc(start_time) else STATE_ACTIVE


async def _resolve_seats(tx: Transaction, showtime_id: int, seat_numbers: list[str]) -> list[Seat]:
    seats = await tx.scalars(
        select(Seat).where(Seat.showtime_id == showtime_id, Seat.seat_number.in_(seat_numbers))
    )
    by_number = {seat.seat_number: seat for seat in seats}
    missing = [n for n in seat_numbers if n not in by_number]
    if missing:
        raise NotFound(
            code="seat",
            message="One or more seats not found",
            details={"seat_numbers": missing},
        )
    return [by_number[n] for n in seat_numbers]


async def _taken_seat_numbers(tx: Transaction, seats: list[Seat]) -> list[str]:
    taken_ids = set(
        await tx.scalars(
            select(BookingSeat.seat_id).where(BookingSeat.seat_id.in_([s.id for s in seats]))
        )
    )
    return [s.seat_number for s in seats if s.id in taken_ids]


async def reserve(
    db: Database,
    showtime_id: Any,
    user_id: int,
    seat_numbers: Any,
    total_price: float,
) -> ReservationResult:
    """
    Atomically book the given seats of a showtime for a user.

    Raises InvalidArgument, NotFound ("showtime" / "seat") or
    Conflict ("seat-already-booked"). Nothing is persisted on failure.
    """
    try:
        showtime_id = _positive_int(showtime_id, "showtime_id")
        seat_numbers = _normalize_seat_numbers(seat_numbers)
        total_price = _non_negative_price(total_price)
    except InvalidArgument:
        record_reservation("invalid")
        raise

    start = time.perf_counter()
    try:
        async with db.transaction() as tx:
            await get_showtime(tx, showtime_id)
            seats = await _resolve_seats(tx, showtime_id, seat_numbers)

            taken = await _taken_seat_numbers(tx, seats)
            if taken:
                raise Conflict(
                    code="seat-already-booked",
                    message="One or more seats are already booked",
                    details={"seat_numbers": taken},
                )

            booking = Booking(user_id=user_id, showtime_id=showtime_id, total_price=total_price)
            tx.add(booking)
            await tx.flush()

            tx.add_all([BookingSeat(booking_id=booking.id, seat_id=seat.id) for seat in seats])
            await tx.flush()
            booking_id = booking.id
    except IntegrityError as exc:
        if not _is_seat_taken(exc):
            record_reservation("error")
            logger.error("booking_failed", showtime_id=showtime_id, user_id=user_id, error=str(exc))
            raise Internal(message="Reservation failed") from exc
        # Lost the race on booking_seats.seat_id
        record_reservation("conflict")
        logger.info(
            "booking_conflict",
            showtime_id=showtime_id,
            user_id=user_id,
            seats=seat_numbers,
            reason="unique_violation",
        )
        raise Conflict(
            code="seat-already-booked",
            message="One or more seats were booked by another request",
            details={"seat_numbers": seat_numbers},
        ) from exc
    except DBAPIError as exc:
        if _is_retryable(exc):
            record_reservation("conflict")
            logger.info(
                "booking_conflict",
                showtime_id=showtime_id,
                user_id=user_id,
                seats=seat_numbers,
                reason="serialization_failure",
            )
            raise Conflict(
                code="seat-already-booked",
                message="Seats are contended, re-check availability and retry",
                details={"seat_numbers": seat_numbers},
            ) from exc
        record_reservation("error")
        logger.error("booking_failed", showtime_id=showtime_id, user_id=user_id, error=str(exc))
        raise Internal(message="Reservation failed") from exc
    except BookingError as exc:
        status = "conflict" if isinstance(exc, Conflict) else "not_found"
        record_reservation(status)
        logger.info(
            "booking_rejected",
            showtime_id=showtime_id,
            user_id=user_id,
            code=exc.code,
            details=exc.details,
        )
        raise
    finally:
        reservation_latency.observe(time.perf_counter() - start)

    record_reservation("success", seat_count=len(seat_numbers))
    logger.info(
        "booking_created",
        booking_id=booking_id,
        user_id=user_id,
        showtime_id=showtime_id,
        seats=seat_numbers,
        total_price=total_price,
    )
    return ReservationResult(
        booking_id=booking_id,
        showtime_id=showtime_id,
        seat_numbers=seat_numbers,
        total_price=float(total_price),
    )


async def cancel_booking(
    db: Database,
    booking_id: Any,
    user_id: int,
    now: Optional[datetime] = None,
) -> None:
    """
    Cancel a booking before its showtime starts, releasing its seats.
    Only the owner may cancel.
    """
    booking_id = _positive_int(booking_id, "booking_id")

    try:
        async with db.transaction() as tx:
            booking = await tx.scalar(
                select(Booking)
                .options(selectinload(Booking.showtime))
                .where(Booking.id == booking_id)
            )
            if booking is None:
                record_cancellation("not_found")
                raise NotFound(code="booking", message="Booking not found")

            if booking.user_id != user_id:
                record_cancellation("forbidden")
                logger.warning("cancel_forbidden", booking_id=booking_id, user_id=user_id)
                raise Forbidden(message="You can only cancel your own bookings")

            if booking_state(booking.showtime.start_time, now) != STATE_ACTIVE:
                record_cancellation("started")
                raise InvalidState(
                    code="showtime-already-started",
                    message="Cannot cancel past or ongoing showtime",
                )

            showtime_id = booking.showtime_id
            released = await tx.execute(delete(BookingSeat).where(BookingSeat.booking_id == booking_id))
            deleted = await tx.execute(delete(Booking).where(Booking.id == booking_id))
            if deleted.rowcount == 0:
                # Cancelled concurrently by another request
                raise NotFound(code="booking", message="Booking not found")
            seats_released = released.rowcount
    except DBAPIError as exc:
        if _is_retryable(exc):
            record_cancellation("conflict")
            logger.info("cancel_conflict", booking_id=booking_id, user_id=user_id, error=str(exc))
            raise Conflict(
                code="booking-contended",
                message="Booking is being modified by another request, retry",
            ) from exc
        record_cancellation("error")
        logger.error("cancel_failed", booking_id=booking_id, user_id=user_id, error=str(exc))
        raise Internal(message="Cancellation failed") from exc

    record_cancellation("success")
    logger.info(
        "booking_cancelled",
        booking_id=booking_id,
        user_id=user_id,
        showtime_id=showtime_id,
        seats_released=seats_released,
    )


def _bookings_query():
    return select(Booking).options(
        selectinload(Booking.seats).selectinload(BookingSeat.seat),
        selectinload(Booking.showtime).selectinload(Showtime.movie),
        selectinload(Booking.user),
    )


def _to_view(booking: Booking, now: datetime) -> BookingView:
    return BookingView(
        id=booking.id,
        user_id=booking.user_id,
        username=booking.user.username if booking.user else None,
        showtime_id=booking.showtime_id,
        movie_name=booking.showtime.movie.name,
        start_time=as_utc(booking.showtime.start_time),
        total_price=booking.total_price,
        created_at=as_utc(booking.created_at),
        state=booking_state(booking.showtime.start_time, now),
        seat_numbers=sorted(link.seat.seat_number for link in booking.seats),
    )


async def get_user_bookings(db: Database, user_id: int) -> list[BookingView]:
    """Get all bookings for a user, newest first."""
    now = utcnow()
    async with db.transaction() as tx:
        bookings = await tx.scalars(
            _bookings_query()
            .where(Booking.user_id == user_id)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        return [_to_view(b, now) for b in bookings]


async def get_all_bookings(db: Database) -> list[BookingView]:
    """Every booking in the system, newest first. Admin gating is done by the caller."""
    now = utcnow()
    async with db.transaction() as tx:
        bookings = await tx.scalars(
            _bookings_query().order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        return [_to_view(b, now) for b in bookings]
