"""
Tests for the single TCP reachability probe
"""
import asyncio
import errno
import socket
from unittest.mock import patch

import pytest

from portwatch.services import connectivity
from portwatch.services.connectivity import ConnectivityChecker, ErrorKind, ProbeStatus


async def _hang(*args, **kwargs):
    await asyncio.sleep(10)


def _raising(exc):
    async def open_connection(*args, **kwargs):
        raise exc
    return open_connection


@pytest.mark.asyncio
async def test_probe_reachable_listener():
    async def handle(reader, writer):
        writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    async with server:
        result = await ConnectivityChecker().probe("127.0.0.1", port, timeout_ms=2000)

    assert result.reachable
    assert result.status == ProbeStatus.REACHABLE
    assert result.elapsed_ms >= 0
    assert result.error_kind is None


@pytest.mark.asyncio
async def test_probe_refused(closed_port):
    result = await ConnectivityChecker().probe("127.0.0.1", closed_port, timeout_ms=2000)

    assert result.status == ProbeStatus.ERROR
    assert result.error_kind == ErrorKind.REFUSED
    assert result.message == "Connection refused"
    assert not result.timed_out


@pytest.mark.asyncio
async def test_probe_timeout_when_no_answer():
    with patch.object(connectivity.asyncio, "open_connection", new=_hang):
        result = await ConnectivityChecker().probe("10.255.255.1", 80, timeout_ms=50)

    assert result.timed_out
    assert result.message == "Connection timeout"
    assert result.elapsed_ms >= 40


@pytest.mark.asyncio
async def test_default_timeout_used_when_not_given():
    checker = ConnectivityChecker(timeout_ms=30)
    with patch.object(connectivity.asyncio, "open_connection", new=_hang):
        result = await checker.probe("10.255.255.1", 80)
    assert result.timed_out


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("exc", "kind"),
    [
        (socket.gaierror(socket.EAI_NONAME, "Name or service not known"), ErrorKind.DNS),
        (OSError(errno.EHOSTUNREACH, "No route to host"), ErrorKind.UNREACHABLE),
        (OSError(errno.ENETUNREACH, "Network is unreachable"), ErrorKind.UNREACHABLE),
        (OSError(errno.EACCES, "Permission denied"), ErrorKind.OTHER),
    ],
)
async def test_probe_terminal_error_kinds(exc, kind):
    with patch.object(connectivity.asyncio, "open_connection", new=_raising(exc)):
        result = await ConnectivityChecker().probe("bad-host", 80, timeout_ms=1000)

    assert result.status == ProbeStatus.ERROR
    assert result.error_kind == kind


@pytest.mark.asyncio
async def test_kernel_connect_timeout_counts_as_timeout():
    exc = OSError(errno.ETIMEDOUT, "Connection timed out")
    with patch.object(connectivity.asyncio, "open_connection", new=_raising(exc)):
        result = await ConnectivityChecker().probe("10.255.255.1", 80, timeout_ms=1000)

    assert result.timed_out
