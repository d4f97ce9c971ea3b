"""Checker service - dispatches port and script checks to a uniform result."""
import logging
from typing import Optional

from .connectivity import ConnectivityChecker
from .remote import RemoteExecutor, RemoteResult
from .retry import RetryController
from .tasks import CheckOutcome, CheckResult, PortTask, ScriptTask, Task

logger = logging.getLogger(__name__)


def _combine_output(result: RemoteResult) -> str:
    if result.stdout and result.stderr:
        return f"{result.stdout.rstrip()}\n{result.stderr}"
    return result.stdout or result.stderr


class CheckerService:
    """Service for performing a task's check.

    Port tasks go through the retry controller, script tasks through the
    remote executor. Every failure, including unexpected exceptions, comes
    back as a failed CheckResult.
    """

    def __init__(
        self,
        retry_controller: Optional[RetryController] = None,
        remote_executor: Optional[RemoteExecutor] = None,
        port_timeout_ms: Optional[int] = None,
    ):
        self.retry_controller = retry_controller or RetryController(ConnectivityChecker())
        self.remote_executor = remote_executor or RemoteExecutor()
        self.port_timeout_ms = port_timeout_ms

    async def check(self, task: Task) -> CheckResult:
        """Perform a check based on task kind."""
        try:
            if isinstance(task, PortTask):
                return await self._check_port(task)
            elif isinstance(task, ScriptTask):
                return await self._check_script(task)
            else:
                return CheckResult(
                    task_id=getattr(task, "id", None),
                    outcome=CheckOutcome.FAILED,
                    error_detail=f"Unknown task type: {type(task).__name__}",
                )
        except Exception as e:
            logger.exception(f"Check for task {getattr(task, 'id', None)} raised")
            return CheckResult(
                task_id=getattr(task, "id", None),
                outcome=CheckOutcome.FAILED,
                error_detail=str(e) or type(e).__name__,
                output="" if isinstance(task, ScriptTask) else None,
            )

    async def _check_port(self, task: PortTask) -> CheckResult:
        result = await self.retry_controller.check_with_retry(
            task.host, task.port, self.port_timeout_ms
        )

        if result.success:
            return CheckResult(
                task_id=task.id,
                outcome=CheckOutcome.SUCCESS,
                attempts=result.attempts,
                response_time_ms=result.response_time_ms,
            )

        detail = result.error or "Connection failed"
        if result.attempts > 1:
            detail = f"{detail} (failed after {result.attempts - 1} retries)"
        return CheckResult(
            task_id=task.id,
            outcome=CheckOutcome.FAILED,
            attempts=result.attempts,
            response_time_ms=result.elapsed_total_ms,
            error_detail=detail,
        )

    async def _check_script(self, task: ScriptTask) -> CheckResult:
        result = await self.remote_executor.run_remote(
            task.host,
            task.credentials.username,
            task.credentials.secret,
            task.command,
        )
        output = _combine_output(result)

        if result.success:
            return CheckResult(
                task_id=task.id,
                outcome=CheckOutcome.SUCCESS,
                response_time_ms=result.elapsed_ms,
                output=output,
            )

        if result.error:
            detail = result.error
        else:
            detail = f"Command exited with code {result.exit_code}"
        return CheckResult(
            task_id=task.id,
            outcome=CheckOutcome.FAILED,
            response_time_ms=result.elapsed_ms,
            error_detail=detail,
            output=output,
        )
