"""Connectivity checker - a single TCP reachability probe."""
import asyncio
import errno
import logging
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 5000

TIMEOUT_MESSAGE = "Connection timeout"

_UNREACHABLE_ERRNOS = {errno.EHOSTUNREACH, errno.ENETUNREACH, errno.EHOSTDOWN}


class ProbeStatus(str, Enum):
    REACHABLE = "reachable"
    TIMEOUT = "timeout"
    ERROR = "error"


class ErrorKind(str, Enum):
    REFUSED = "refused"
    DNS = "dns"
    UNREACHABLE = "unreachable"
    OTHER = "other"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one connection attempt."""
    status: ProbeStatus
    elapsed_ms: int
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @property
    def reachable(self) -> bool:
        return self.status == ProbeStatus.REACHABLE

    @property
    def timed_out(self) -> bool:
        return self.status == ProbeStatus.TIMEOUT


class ConnectivityChecker:
    """Opens a TCP connection and closes it again as soon as it succeeds."""

    def __init__(self, timeout_ms: int = DEFAULT_TIMEOUT_MS):
        self.timeout_ms = timeout_ms

    async def probe(self, host: str, port: int, timeout_ms: Optional[int] = None) -> ProbeResult:
        """Probe ``host:port`` once.

        The deadline covers name resolution and the TCP handshake. Refused
        connections, DNS failures and unreachable hosts come back as
        ``ERROR`` with a kind; only an expired deadline is ``TIMEOUT``.
        """
        timeout_ms = timeout_ms or self.timeout_ms
        loop = asyncio.get_running_loop()
        start = loop.time()

        def elapsed() -> int:
            return int((loop.time() - start) * 1000)

        try:
            _reader, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port),
                timeout=timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            return ProbeResult(ProbeStatus.TIMEOUT, elapsed(), message=TIMEOUT_MESSAGE)
        except socket.gaierror as e:
            return ProbeResult(
                ProbeStatus.ERROR, elapsed(), ErrorKind.DNS, f"DNS resolution failed: {e}"
            )
        except ConnectionRefusedError:
            return ProbeResult(
                ProbeStatus.ERROR, elapsed(), ErrorKind.REFUSED, "Connection refused"
            )
        except OSError as e:
            # Kernel-level connect timeout is the same transient condition
            if e.errno == errno.ETIMEDOUT:
                return ProbeResult(ProbeStatus.TIMEOUT, elapsed(), message=TIMEOUT_MESSAGE)
            kind = ErrorKind.UNREACHABLE if e.errno in _UNREACHABLE_ERRNOS else ErrorKind.OTHER
            return ProbeResult(ProbeStatus.ERROR, elapsed(), kind, str(e) or type(e).__name__)

        response_time = elapsed()
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            # Peer reset during close; the connect itself succeeded
            pass
        return ProbeResult(ProbeStatus.REACHABLE, response_time)
