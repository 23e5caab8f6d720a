"""
Read-only booking statistics for the admin reports endpoint.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.core.exceptions import InvalidArgument
from app.core.logging import get_logger
from app.db.base import as_utc
from app.db.session import Database
from app.models.booking import Booking
from app.models.showtime import Showtime

logger = get_logger(__name__)


@dataclass
class Report:
    total_bookings: int = 0
    total_seats_booked: int = 0
    total_revenue: float = 0.0
    revenue_by_movie: dict[str, float] = field(default_factory=dict)


async def compute_report(
    db: Database,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Report:
    """
    Aggregate committed bookings, optionally limited to those created within
    [start, end]. Both bounds must be given together.
    """
    if (start is None) != (end is None):
        raise InvalidArgument(message="start_date and end_date must be given together")
    if start is not None and as_utc(start) > as_utc(end):
        raise InvalidArgument(message="start_date must not be after end_date")

    query = select(Booking).options(
        selectinload(Booking.seats),
        selectinload(Booking.showtime).selectinload(Showtime.movie),
    )
    if start is not None:
        query = query.where(Booking.created_at >= as_utc(start), Booking.created_at <= as_utc(end))

    async with db.transaction() as tx:
        bookings = await tx.scalars(query)

        report = Report(total_bookings=len(bookings))
        for booking in bookings:
            report.total_seats_booked += len(booking.seats)
            report.total_revenue += booking.total_price
            movie_name = booking.showtime.movie.name
            report.revenue_by_movie[movie_name] = (
                report.revenue_by_movie.get(movie_name, 0.0) + booking.total_price
            )

    logger.info(
        "report_computed",
        total_bookings=report.total_bookings,
        total_revenue=report.total_revenue,
        windowed=start is not None,
    )
    return report
