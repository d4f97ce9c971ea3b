"""Remote executor - runs one command over SSH and reports its exit status."""
import asyncio
import logging
import shlex
import socket
import time
from dataclasses import dataclass
from typing import Optional

import paramiko

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30000
DEFAULT_SSH_PORT = 22

# Bytes read per recv call, and idle wait between polls
RECV_CHUNK = 32768
POLL_INTERVAL = 0.05


@dataclass(frozen=True)
class RemoteResult:
    """Result of a remote command run."""
    success: bool
    stdout: str
    stderr: str
    elapsed_ms: int
    exit_code: Optional[int] = None
    error: Optional[str] = None  # connection/auth/timeout failures


def working_directory(username: str) -> str:
    """Home directory the command runs in."""
    return "/root" if username == "root" else f"/home/{username}"


def _to_text(value: bytes) -> str:
    return bytes(value).decode("utf-8", errors="replace")


def _drain(channel, timeout: float, stdout: bytearray, stderr: bytearray) -> int:
    """Read both streams until the command exits and return its exit status.

    stdout and stderr share one channel window, so they are read together.
    Raises socket.timeout once ``timeout`` seconds pass without an exit;
    whatever was read so far stays in the buffers.
    """
    deadline = time.monotonic() + timeout
    while True:
        received = False
        if channel.recv_ready():
            stdout += channel.recv(RECV_CHUNK)
            received = True
        if channel.recv_stderr_ready():
            stderr += channel.recv_stderr(RECV_CHUNK)
            received = True
        if received:
            continue
        if channel.exit_status_ready():
            return channel.recv_exit_status()
        if time.monotonic() >= deadline:
            raise socket.timeout()
        time.sleep(POLL_INTERVAL)


class RemoteExecutor:
    """Service for running a single command on a remote host.

    Each call opens its own session and closes it before returning,
    whatever the outcome. Nothing is retried here.
    """

    def __init__(self, port: int = DEFAULT_SSH_PORT, timeout_ms: int = DEFAULT_TIMEOUT_MS):
        self.port = port
        self.timeout_ms = timeout_ms

    async def run_remote(
        self,
        host: str,
        username: str,
        secret: str,
        command: str,
        timeout_ms: Optional[int] = None,
    ) -> RemoteResult:
        """Run ``command`` on ``host`` in a worker thread (paramiko is blocking)."""
        timeout_ms = timeout_ms or self.timeout_ms
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, self._run, host, username, secret, command, timeout_ms / 1000
        )

    def _run(self, host: str, username: str, secret: str, command: str, timeout: float) -> RemoteResult:
        start = time.monotonic()
        stdout_bytes = bytearray()
        stderr_bytes = bytearray()
        exit_code = None
        error = None

        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                hostname=host,
                port=self.port,
                username=username,
                password=secret,
                timeout=timeout,
                banner_timeout=timeout,
                auth_timeout=timeout,
                look_for_keys=False,
                allow_agent=False,
            )
            full_command = f"cd {shlex.quote(working_directory(username))} && {command}"
            logger.debug(f"Executing on {host} as {username}: {command}")
            _stdin, stdout, _stderr = client.exec_command(full_command, timeout=timeout)
            exit_code = _drain(stdout.channel, timeout, stdout_bytes, stderr_bytes)
        except paramiko.AuthenticationException as e:
            error = f"Authentication failed: {e}"
        except socket.timeout:
            error = f"Command timed out after {timeout:g}s"
        except paramiko.SSHException as e:
            error = f"SSH error: {e}"
        except OSError as e:
            error = f"Connection failed: {e}"
        finally:
            client.close()

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stdout_text = _to_text(stdout_bytes)
        stderr_text = _to_text(stderr_bytes)

        if error is not None:
            logger.warning(f"Remote command on {host} failed: {error}")
            return RemoteResult(
                success=False,
                stdout=stdout_text,
                stderr=stderr_text,
                elapsed_ms=elapsed_ms,
                error=error,
            )

        logger.debug(f"Remote command on {host} exited with {exit_code} in {elapsed_ms}ms")
        return RemoteResult(
            success=exit_code == 0,
            stdout=stdout_text,
            stderr=stderr_text,
            elapsed_ms=elapsed_ms,
            exit_code=exit_code,
        )
