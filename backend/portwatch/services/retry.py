"""Retry controller - bounded retries of port probes on timeout only."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .backoff import BackoffPolicy
from .connectivity import ConnectivityChecker, ErrorKind

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3


@dataclass(frozen=True)
class RetryResult:
    """Terminal outcome of a retry sequence."""
    success: bool
    attempts: int
    elapsed_total_ms: int
    response_time_ms: Optional[int] = None  # successful attempt only
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None


class RetryController:
    """Wraps the connectivity checker with failure-kind dependent retries.

    Only a timeout is retried, after a backoff wait. Any other failure
    ends the sequence at once.
    """

    def __init__(
        self,
        checker: ConnectivityChecker,
        backoff: Optional[BackoffPolicy] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.checker = checker
        self.backoff = backoff or BackoffPolicy()
        self.max_retries = max_retries
        self._sleep = sleep

    async def check_with_retry(
        self,
        host: str,
        port: int,
        timeout_ms: Optional[int] = None,
        max_retries: Optional[int] = None,
    ) -> RetryResult:
        if max_retries is None:
            max_retries = self.max_retries
        loop = asyncio.get_running_loop()
        start = loop.time()
        attempts = 0
        last = None

        for attempt in range(max_retries + 1):
            if attempt > 0:
                wait_ms = self.backoff.wait_ms(attempt)
                logger.info(
                    f"Retry {attempt}/{max_retries} for {host}:{port}, waiting {wait_ms}ms"
                )
                await self._sleep(wait_ms / 1000)

            attempts += 1
            last = await self.checker.probe(host, port, timeout_ms)

            if last.reachable:
                logger.debug(f"{host}:{port} reachable in {last.elapsed_ms}ms (attempt {attempts})")
                return RetryResult(
                    success=True,
                    attempts=attempts,
                    elapsed_total_ms=int((loop.time() - start) * 1000),
                    response_time_ms=last.elapsed_ms,
                )

            logger.info(f"Attempt {attempts} to {host}:{port} failed: {last.message}")
            if not last.timed_out:
                logger.info(f"Not retrying {host}:{port}: {last.error_kind.value} is terminal")
                break

        return RetryResult(
            success=False,
            attempts=attempts,
            elapsed_total_ms=int((loop.time() - start) * 1000),
            error=last.message,
            error_kind=last.error_kind,
        )
