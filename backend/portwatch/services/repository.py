"""Storage collaborator used by the monitoring engine."""
import logging
from typing import List, Optional, Protocol

from sqlalchemy import select

from ..models import Task as TaskModel, CheckLog, WebhookConfig
from .tasks import CheckResult, RunState, SchedulingError, Task, task_from_model

logger = logging.getLogger(__name__)


class TaskRepository(Protocol):
    """What the engine needs from persistence."""

    async def load_task(self, task_id: int) -> Optional[Task]: ...

    async def append_log(self, result: CheckResult) -> None: ...

    async def get_webhook_endpoint(self) -> Optional[str]: ...

    async def list_running_tasks(self) -> List[Task]: ...


class SqlTaskRepository:
    """TaskRepository over the SQLAlchemy async session factory."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def load_task(self, task_id: int) -> Optional[Task]:
        """Return the task variant, or None if it no longer exists.

        Raises SchedulingError if the stored row is malformed.
        """
        async with self.session_factory() as session:
            result = await session.execute(select(TaskModel).where(TaskModel.id == task_id))
            row = result.scalar_one_or_none()
        if row is None:
            return None
        return task_from_model(row)

    async def append_log(self, result: CheckResult) -> None:
        async with self.session_factory() as session:
            session.add(CheckLog(
                task_id=result.task_id,
                status=result.outcome.value,
                response_time_ms=result.response_time_ms,
                error_message=result.error_detail,
                output=result.output,
                attempts=result.attempts,
                checked_at=result.timestamp,
            ))
            await session.commit()

    async def get_webhook_endpoint(self) -> Optional[str]:
        """Most recently saved webhook URL."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(WebhookConfig.webhook_url)
                .order_by(WebhookConfig.id.desc())
                .limit(1)
            )
            url = result.scalar_one_or_none()
        return url or None

    async def list_running_tasks(self) -> List[Task]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(TaskModel).where(TaskModel.status == RunState.RUNNING.value)
            )
            rows = result.scalars().all()

        tasks = []
        for row in rows:
            try:
                tasks.append(task_from_model(row))
            except SchedulingError as e:
                logger.error(f"Skipping malformed task {row.id} ({row.name}): {e}")
        return tasks
