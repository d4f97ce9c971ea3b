"""
Tests for the check dispatcher that normalizes port and script outcomes
"""
from unittest.mock import AsyncMock, Mock

import pytest

from portwatch.services.checker import CheckerService
from portwatch.services.connectivity import ErrorKind
from portwatch.services.remote import RemoteResult
from portwatch.services.retry import RetryResult
from portwatch.services.tasks import CheckOutcome


@pytest.fixture
def retry_controller():
    controller = Mock()
    controller.check_with_retry = AsyncMock()
    return controller


@pytest.fixture
def remote_executor():
    executor = Mock()
    executor.run_remote = AsyncMock()
    return executor


@pytest.fixture
def checker(retry_controller, remote_executor):
    return CheckerService(retry_controller=retry_controller, remote_executor=remote_executor)


class TestPortChecks:

    @pytest.mark.asyncio
    async def test_success(self, checker, retry_controller, remote_executor, port_task):
        retry_controller.check_with_retry.return_value = RetryResult(
            success=True, attempts=1, elapsed_total_ms=15, response_time_ms=12,
        )

        result = await checker.check(port_task)

        assert result.outcome == CheckOutcome.SUCCESS
        assert result.task_id == port_task.id
        assert result.attempts == 1
        assert result.response_time_ms == 12
        assert result.error_detail is None
        assert result.output is None
        retry_controller.check_with_retry.assert_awaited_once_with("db.internal", 5432, None)
        remote_executor.run_remote.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_after_retries_mentions_retry_count(self, checker, retry_controller, port_task):
        retry_controller.check_with_retry.return_value = RetryResult(
            success=False, attempts=4, elapsed_total_ms=27000, error="Connection timeout",
        )

        result = await checker.check(port_task)

        assert result.outcome == CheckOutcome.FAILED
        assert result.attempts == 4
        assert result.response_time_ms == 27000
        assert result.error_detail == "Connection timeout (failed after 3 retries)"

    @pytest.mark.asyncio
    async def test_single_attempt_failure_has_no_retry_suffix(self, checker, retry_controller, port_task):
        retry_controller.check_with_retry.return_value = RetryResult(
            success=False, attempts=1, elapsed_total_ms=2,
            error="Connection refused", error_kind=ErrorKind.REFUSED,
        )

        result = await checker.check(port_task)

        assert result.attempts == 1
        assert result.error_detail == "Connection refused"

    @pytest.mark.asyncio
    async def test_port_timeout_setting_is_forwarded(self, retry_controller, remote_executor, port_task):
        retry_controller.check_with_retry.return_value = RetryResult(
            success=True, attempts=1, elapsed_total_ms=1, response_time_ms=1,
        )
        checker = CheckerService(retry_controller, remote_executor, port_timeout_ms=1500)

        await checker.check(port_task)

        retry_controller.check_with_retry.assert_awaited_once_with("db.internal", 5432, 1500)


class TestScriptChecks:

    @pytest.mark.asyncio
    async def test_success(self, checker, remote_executor, retry_controller, script_task):
        remote_executor.run_remote.return_value = RemoteResult(
            success=True, stdout="42% used\n", stderr="", elapsed_ms=800, exit_code=0,
        )

        result = await checker.check(script_task)

        assert result.outcome == CheckOutcome.SUCCESS
        assert result.attempts == 1
        assert result.output == "42% used\n"
        assert result.response_time_ms == 800
        remote_executor.run_remote.assert_awaited_once_with(
            "app.internal", "deploy", "s3cret", "df -h /"
        )
        retry_controller.check_with_retry.assert_not_called()

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, checker, remote_executor, script_task):
        remote_executor.run_remote.return_value = RemoteResult(
            success=False, stdout="checking\n", stderr="disk full\n", elapsed_ms=300, exit_code=2,
        )

        result = await checker.check(script_task)

        assert result.outcome == CheckOutcome.FAILED
        assert result.attempts == 1
        assert result.error_detail == "Command exited with code 2"
        assert result.output == "checking\ndisk full\n"

    @pytest.mark.asyncio
    async def test_connection_failure(self, checker, remote_executor, script_task):
        remote_executor.run_remote.return_value = RemoteResult(
            success=False, stdout="", stderr="", elapsed_ms=30000,
            error="Authentication failed: bad credentials",
        )

        result = await checker.check(script_task)

        assert result.outcome == CheckOutcome.FAILED
        assert result.error_detail == "Authentication failed: bad credentials"
        assert result.output == ""


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_failed_result(checker, remote_executor, script_task):
    remote_executor.run_remote.side_effect = RuntimeError("executor pool is closed")

    result = await checker.check(script_task)

    assert result.outcome == CheckOutcome.FAILED
    assert result.attempts == 1
    assert result.error_detail == "executor pool is closed"


@pytest.mark.asyncio
async def test_unknown_task_type(checker):
    task = Mock(id=9)

    result = await checker.check(task)

    assert result.failed
    assert "Unknown task type" in result.error_detail
