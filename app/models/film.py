from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class UserFilm(Base):
    """
    A film tracked by one user, classified as to-watch / watched / rejected.
    Films saved from a recommendation batch keep its generation_id.
    """
    __tablename__ = "user_films"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    year = Column(Integer, nullable=False)
    description = Column(Text)
    genres = Column(JSON)  # ["Drama", "Sci-Fi"]
    actors = Column(JSON)  # ["Actor One", "Actor Two"]
    director = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="to-watch")
    generation_id = Column(Integer, ForeignKey("generation_logs.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="films")
    status_logs = relationship("FilmStatusLog", back_populates="film", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("user_id", "title", name="unique_user_film_title"),
        Index("ix_user_films_user_status", "user_id", "status"),
        Index("ix_user_films_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<UserFilm(id={self.id}, title='{self.title}', status={self.status})>"


class FilmStatusLog(Base):
    """Append-only audit trail of status changes"""
    __tablename__ = "film_status_logs"

    id = Column(Integer, primary_key=True, index=True)
    film_id = Column(Integer, ForeignKey("user_films.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    prev_status = Column(String(20), nullable=False)
    next_status = Column(String(20), nullable=False)
    status_changed_at = Column(DateTime(timezone=True), server_default=func.now())

    film = relationship("UserFilm", back_populates="status_logs")
