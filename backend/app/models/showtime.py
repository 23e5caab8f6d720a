"""
Showtime and Seat models.

Key design decisions:
- A seat belongs to exactly one showtime; (showtime_id, seat_number) is unique
- There is no "is_booked" column: a seat is taken when a BookingSeat row
  references it, so availability is always an anti-join against booking_seats
- Check constraints keep start < end and capacity > 0 at the DB level
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    DateTime,
    ForeignKey,
    Index,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Showtime(Base, TimestampMixin):
    __tablename__ = "showtimes"

    id = Column(Integer, primary_key=True, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    capacity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)

    movie = relationship("Movie", back_populates="showtimes")
    seats = relationship(
        "Seat",
        back_populates="showtime",
        order_by="Seat.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    bookings = relationship("Booking", back_populates="showtime")

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="check_showtime_window"),
        CheckConstraint("capacity > 0", name="check_showtime_capacity_positive"),
        CheckConstraint("price >= 0", name="check_showtime_price_non_negative"),
        Index("ix_showtimes_start_time", "start_time"),
    )

    def __repr__(self) -> str:
        return f"<Showtime(id={self.id}, movie={self.movie_id}, start={self.start_time})>"


class Seat(Base):
    __tablename__ = "seats"

    id = Column(Integer, primary_key=True, index=True)
    showtime_id = Column(Integer, ForeignKey("showtimes.id", ondelete="CASCADE"), nullable=False, index=True)
    seat_number = Column(String(10), nullable=False)
    row = Column(String(5), nullable=False)

    showtime = relationship("Showtime", back_populates="seats")

    __table_args__ = (
        UniqueConstraint("showtime_id", "seat_number", name="uq_seat_showtime_number"),
    )

    def __repr__(self) -> str:
        return f"<Seat(id={self.id}, showtime={self.showtime_id}, number={self.seat_number})>"
