"""Services for checking, scheduling, and alerting."""
from .checker import CheckerService
from .scheduler import SchedulerService, create_scheduler_service
from .alerter import AlerterService
from .repository import SqlTaskRepository, TaskRepository

__all__ = [
    "CheckerService",
    "SchedulerService",
    "AlerterService",
    "SqlTaskRepository",
    "TaskRepository",
    "create_scheduler_service",
]
