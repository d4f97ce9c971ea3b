"""API routers."""
from .tasks import router as tasks_router
from .webhook import router as webhook_router

__all__ = ["tasks_router", "webhook_router"]
