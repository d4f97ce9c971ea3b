"""Exponential backoff between retried port checks."""
from dataclasses import dataclass

DEFAULT_BASE_MS = 1000
DEFAULT_CAP_MS = 10000


@dataclass(frozen=True)
class BackoffPolicy:
    """Wait before retry ``n`` is ``min(base * 2^(n-1), cap)`` milliseconds.

    Retry 1 is the wait before the second overall attempt; the first
    attempt never waits.
    """
    base_ms: int = DEFAULT_BASE_MS
    cap_ms: int = DEFAULT_CAP_MS

    def wait_ms(self, attempt: int) -> int:
        if attempt < 1:
            raise ValueError(f"Retry attempt index starts at 1, got {attempt}")
        return min(self.base_ms * 2 ** (attempt - 1), self.cap_ms)
