"""
Audit rows written by the recommendation flow.

One GenerationLog per successful request (its id is handed to the client as
generation_id), one GenerationErrorLog per failed request.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func
from app.database import Base


class GenerationLog(Base):
    __tablename__ = "generation_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    criteria_hash = Column(String(64), nullable=False)
    generated_count = Column(Integer, nullable=False)
    generation_duration = Column(Integer, nullable=False)  # milliseconds
    model = Column(String(255), nullable=False)
    marked_as_to_watch_count = Column(Integer, nullable=True)
    marked_as_watched_count = Column(Integer, nullable=True)
    marked_as_rejected_count = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<GenerationLog(id={self.id}, user_id={self.user_id}, count={self.generated_count})>"


class GenerationErrorLog(Base):
    __tablename__ = "generation_error_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    error_message = Column(Text, nullable=False)
    error_code = Column(String(64), nullable=False)
    criteria_hash = Column(String(64), nullable=False)
    model = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
