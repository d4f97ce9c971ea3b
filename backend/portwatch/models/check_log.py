"""CheckLog model - append-only history of check results."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from ..database import Base


class CheckLog(Base):
    """One check result, written once per tick or manual check."""

    __tablename__ = "check_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    status = Column(String, nullable=False)  # success, failed
    response_time_ms = Column(Integer, nullable=True)
    error_message = Column(String, nullable=True)
    output = Column(Text, nullable=True)  # script tasks only
    attempts = Column(Integer, nullable=False, default=1)
    checked_at = Column(DateTime, default=datetime.now)  # local time

    # Relationship
    task = relationship("Task", back_populates="logs")
