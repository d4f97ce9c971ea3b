"""WebhookConfig model - alert endpoint history."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime

from ..database import Base


class WebhookConfig(Base):
    """A saved webhook endpoint. The newest row is the active one."""

    __tablename__ = "webhook_configs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    webhook_url = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
