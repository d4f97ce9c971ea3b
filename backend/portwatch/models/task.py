"""Task model - configured monitoring units."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from ..database import Base


class Task(Base):
    """A port-reachability or remote-script check run on an interval."""

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    kind = Column(String, nullable=False, default="port")  # port, script
    hostname = Column(String, nullable=False)
    port = Column(Integer, nullable=True)  # port tasks only
    username = Column(String, nullable=True)  # script tasks only
    password = Column(String, nullable=True)  # script tasks only
    command = Column(String, nullable=True)  # script tasks only
    interval_value = Column(Integer, nullable=False)
    interval_unit = Column(String, nullable=False)  # seconds, minutes, hours
    status = Column(String, nullable=False, default="stopped")  # stopped, running
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    logs = relationship("CheckLog", back_populates="task", cascade="all, delete-orphan")
