"""Scheduler service - runs each task's check on its own interval.

Design:
- One APScheduler interval job per running task, keyed by task id
- The id -> job map is guarded by a lock; starting a task that already has
  a job replaces it, so edits never leave a duplicate timer behind
- A per-task lock keeps two evaluations of the same task from overlapping
  (scheduled tick vs. tick, or tick vs. manual check)
- Checks across tasks run concurrently, bounded by a shared semaphore
"""
import asyncio
import logging
import threading
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Set

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ..config import Settings
from .alerter import AlerterService
from .backoff import BackoffPolicy
from .checker import CheckerService
from .connectivity import ConnectivityChecker
from .remote import RemoteExecutor
from .repository import TaskRepository
from .retry import RetryController
from .tasks import CheckResult, Task

logger = logging.getLogger(__name__)

# Maximum checks in flight across all tasks
MAX_CONCURRENT_CHECKS = 10

SHUTDOWN_GRACE_SECONDS = 5


def _job_id(task_id: int) -> str:
    return f"task-{task_id}"


class SchedulerService:
    """Service for scheduling and running periodic task checks."""

    def __init__(
        self,
        checker: CheckerService,
        alerter: AlerterService,
        repository: TaskRepository,
        max_concurrent_checks: int = MAX_CONCURRENT_CHECKS,
    ):
        self.checker = checker
        self.alerter = alerter
        self.repository = repository
        self.max_concurrent_checks = max_concurrent_checks
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

        self._jobs: Dict[int, Job] = {}
        self._jobs_lock = threading.Lock()
        self._task_locks: Dict[int, asyncio.Lock] = {}
        self._lock_users: Dict[int, int] = {}
        self._semaphore = asyncio.Semaphore(max_concurrent_checks)
        self._in_flight: Set[asyncio.Future] = set()

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        """Start the scheduler. Must be called from within the event loop."""
        if self._running:
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.start()
        self._running = True
        logger.info(f"Scheduler started (max_concurrent={self.max_concurrent_checks})")

    async def restore(self) -> int:
        """Start a timer for every task persisted as running."""
        try:
            tasks = await self.repository.list_running_tasks()
        except Exception as e:
            logger.error(f"Failed to restore tasks: {e}")
            return 0

        restored = 0
        for task in tasks:
            try:
                self.start_task(task)
                restored += 1
                logger.info(f"Restored task: {task.name}")
            except Exception as e:
                logger.error(f"Failed to restore task {task.name}: {e}")
        return restored

    async def shutdown(self, grace_seconds: float = SHUTDOWN_GRACE_SECONDS):
        """Cancel every timer, then give in-flight checks a grace period."""
        if not self._running:
            return

        with self._jobs_lock:
            for task_id in list(self._jobs):
                self._remove_job(task_id)
                logger.info(f"Stopped task: {task_id}")

        pending = [f for f in self._in_flight if not f.done()]
        self.scheduler.shutdown(wait=False)
        self._running = False

        if pending:
            logger.info(f"Waiting up to {grace_seconds}s for {len(pending)} in-flight checks")
            _done, still_running = await asyncio.wait(pending, timeout=grace_seconds)
            if still_running:
                logger.warning(f"Abandoning {len(still_running)} checks still running at shutdown")
        logger.info("Scheduler stopped")

    def start_task(self, task: Task) -> None:
        """Schedule ``task``, replacing any timer it already has.

        Raises SchedulingError for an invalid interval before any timer
        is touched.
        """
        if not self._running:
            raise RuntimeError("Scheduler is not running")

        trigger = task.interval.trigger()

        with self._jobs_lock:
            replaced = self._remove_job(task.id)
            job = self.scheduler.add_job(
                self._tick,
                trigger=trigger,
                args=[task.id],
                id=_job_id(task.id),
                name=task.name,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=None,
            )
            self._jobs[task.id] = job

        action = "restarted" if replaced else "started"
        logger.info(f"Task {action}: {task.name} (every {task.interval})")

    def stop_task(self, task_id: int) -> bool:
        """Cancel future ticks for ``task_id``. Returns False if it had no timer."""
        with self._jobs_lock:
            stopped = self._remove_job(task_id)
        if stopped:
            logger.info(f"Task stopped: {task_id}")
        return stopped

    def is_scheduled(self, task_id: int) -> bool:
        with self._jobs_lock:
            return task_id in self._jobs

    def scheduled_task_ids(self) -> List[int]:
        with self._jobs_lock:
            return list(self._jobs)

    async def run_once(self, task: Task) -> CheckResult:
        """Check ``task`` now, outside its timer, with the same log and alert path."""
        async with self._exclusive(task.id):
            return await self._evaluate(task)

    def _remove_job(self, task_id: int) -> bool:
        """Caller holds ``_jobs_lock``."""
        job = self._jobs.pop(task_id, None)
        if job is None:
            return False
        try:
            job.remove()
        except JobLookupError:
            pass
        return True

    @asynccontextmanager
    async def _exclusive(self, task_id: int):
        """Hold the task's lock. The lock is dropped once nobody holds or awaits it."""
        lock = self._task_locks.get(task_id)
        if lock is None:
            lock = self._task_locks[task_id] = asyncio.Lock()
        self._lock_users[task_id] = self._lock_users.get(task_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[task_id] -= 1
            if not self._lock_users[task_id]:
                del self._lock_users[task_id]
                del self._task_locks[task_id]

    def _is_busy(self, task_id: int) -> bool:
        """True while an evaluation of the task holds or awaits its lock."""
        return task_id in self._lock_users

    async def _tick(self, task_id: int):
        inner = asyncio.ensure_future(self._run_tick(task_id))
        self._in_flight.add(inner)
        inner.add_done_callback(self._in_flight.discard)
        # Scheduler shutdown cancels the job coroutine, not the check itself
        await asyncio.shield(inner)

    async def _run_tick(self, task_id: int):
        """One scheduled tick. Faults are logged and the tick skipped."""
        try:
            try:
                task = await self.repository.load_task(task_id)
            except Exception as e:
                logger.error(f"Skipping tick for task {task_id}: {e}")
                return

            if task is None:
                logger.warning(f"Skipping tick for task {task_id}: task not found")
                return

            if self._is_busy(task_id):
                logger.warning(f"Skipping tick for {task.name}: previous check still running")
                return

            async with self._exclusive(task_id):
                await self._evaluate(task)
        except Exception:
            logger.exception(f"Error running tick for task {task_id}")

    async def _evaluate(self, task: Task) -> CheckResult:
        async with self._semaphore:
            result = await self.checker.check(task)

        try:
            await self.repository.append_log(result)
        except Exception as e:
            logger.error(f"Failed to record check for {task.name}: {e}")

        if result.failed:
            await self.alerter.notify_failure(task, result)

        logger.info(
            f"Check complete - {task.name} ({task.target}): {result.outcome.value}"
            f" (attempts={result.attempts})"
        )
        return result


def create_scheduler_service(repository: TaskRepository, settings: Settings) -> SchedulerService:
    """Wire the engine together from settings."""
    retry_controller = RetryController(
        ConnectivityChecker(timeout_ms=settings.check_timeout_ms),
        backoff=BackoffPolicy(base_ms=settings.backoff_base_ms, cap_ms=settings.backoff_cap_ms),
        max_retries=settings.max_retries,
    )
    checker = CheckerService(
        retry_controller=retry_controller,
        remote_executor=RemoteExecutor(port=settings.ssh_port, timeout_ms=settings.ssh_timeout_ms),
    )
    alerter = AlerterService(
        repository.get_webhook_endpoint,
        timeout=settings.webhook_timeout_seconds,
        output_limit=settings.alert_output_limit,
    )
    return SchedulerService(
        checker,
        alerter,
        repository,
        max_concurrent_checks=settings.max_concurrent_checks,
    )
