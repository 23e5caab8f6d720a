"""
Movie model. A movie owns its showtimes; deleting it removes showtimes and seats.
"""

from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Movie(Base, TimestampMixin):
    __tablename__ = "movies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(String(2000), nullable=True)
    image_url = Column(String(1000), nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    showtimes = relationship(
        "Showtime",
        back_populates="movie",
        order_by="Showtime.start_time",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Movie(id={self.id}, name={self.name})>"
