"""FastAPI dependencies for the monitoring engine."""
from fastapi import Request

from .services.scheduler import SchedulerService


def get_scheduler(request: Request) -> SchedulerService:
    """The scheduler built in the application lifespan."""
    return request.app.state.scheduler
