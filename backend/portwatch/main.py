"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .database import async_session, init_db, close_db
from .routers import tasks_router, webhook_router
from .services.repository import SqlTaskRepository
from .services.scheduler import create_scheduler_service

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting portwatch")

    await init_db()
    logger.info("Database initialized")

    scheduler = create_scheduler_service(SqlTaskRepository(async_session), settings)
    scheduler.start()
    restored = await scheduler.restore()
    logger.info(f"Restored {restored} running tasks")
    app.state.scheduler = scheduler

    yield

    await scheduler.shutdown(settings.shutdown_grace_seconds)
    await close_db()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="portwatch",
        description="Scheduled port reachability and remote script checks with webhook alerts",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(tasks_router)
    app.include_router(webhook_router)

    @app.get("/health")
    async def health_check():
        scheduler = getattr(app.state, "scheduler", None)
        return {
            "status": "healthy",
            "scheduled_tasks": len(scheduler.scheduled_task_ids()) if scheduler else 0,
        }

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)
