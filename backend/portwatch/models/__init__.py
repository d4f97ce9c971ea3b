"""Database models."""
from .task import Task
from .check_log import CheckLog
from .webhook_config import WebhookConfig

__all__ = ["Task", "CheckLog", "WebhookConfig"]
