"""
Booking and BookingSeat models.

Key design decisions:
- A booking is created together with its BookingSeat rows in one transaction
  and deleted together with them on cancellation; there is no status column
- UNIQUE(booking_seats.seat_id) is the store-level no-double-booking rule:
  two transactions racing for the same seat cannot both commit
- total_price is stored as supplied by the caller
"""

from sqlalchemy import Column, Integer, Float, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin

SEAT_UNIQUE_CONSTRAINT = "uq_booking_seats_seat_id"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    showtime_id = Column(Integer, ForeignKey("showtimes.id"), nullable=False, index=True)
    total_price = Column(Float, nullable=False)

    # Relationships
    user = relationship("User", back_populates="bookings")
    showtime = relationship("Showtime", back_populates="bookings")
    seats = relationship(
        "BookingSeat",
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("total_price >= 0", name="check_booking_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, showtime={self.showtime_id})>"


class BookingSeat(Base):
    __tablename__ = "booking_seats"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    seat_id = Column(Integer, ForeignKey("seats.id"), nullable=False)

    booking = relationship("Booking", back_populates="seats")
    seat = relationship("Seat")

    __table_args__ = (
        # One live link per seat
        UniqueConstraint("seat_id", name=SEAT_UNIQUE_CONSTRAINT),
    )

    def __repr__(self) -> str:
        return f"<BookingSeat(booking={self.booking_id}, seat={self.seat_id})>"
