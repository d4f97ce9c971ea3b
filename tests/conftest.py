"""
Shared test configuration and fixtures
"""
import os
import socket
import sqlite3
import tempfile

import pytest

# Point the app at a throwaway SQLite file before importing it
os.environ["DATA_PATH"] = tempfile.mkdtemp(prefix="portwatch-tests-")
os.environ.pop("DATABASE_URL", None)

from portwatch.services.tasks import (  # noqa: E402
    CheckOutcome,
    CheckResult,
    Credentials,
    Interval,
    IntervalUnit,
    PortTask,
    ScriptTask,
)

DB_PATH = os.path.join(os.environ["DATA_PATH"], "portwatch.db")


class FakeRepository:
    """In-memory stand-in for the storage collaborator."""

    def __init__(self, tasks=None, webhook=None):
        self.tasks = {task.id: task for task in tasks or []}
        self.logs = []
        self.webhook = webhook
        self.running = []

    async def load_task(self, task_id):
        return self.tasks.get(task_id)

    async def append_log(self, result):
        self.logs.append(result)

    async def get_webhook_endpoint(self):
        return self.webhook

    async def list_running_tasks(self):
        return list(self.running)


@pytest.fixture
def make_repository():
    return FakeRepository


@pytest.fixture
def port_task():
    return PortTask(
        id=1,
        name="Database",
        host="db.internal",
        port=5432,
        interval=Interval(30, IntervalUnit.SECONDS),
    )


@pytest.fixture
def script_task():
    return ScriptTask(
        id=2,
        name="Disk usage",
        host="app.internal",
        credentials=Credentials(username="deploy", secret="s3cret"),
        command="df -h /",
        interval=Interval(5, IntervalUnit.MINUTES),
    )


@pytest.fixture
def failed_result():
    return CheckResult(
        task_id=1,
        outcome=CheckOutcome.FAILED,
        attempts=4,
        response_time_ms=7000,
        error_detail="Connection timeout (failed after 3 retries)",
    )


@pytest.fixture
def closed_port():
    """A local port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def client():
    """Test client with a running scheduler; tables are emptied afterwards"""
    from fastapi.testclient import TestClient
    from portwatch.main import app

    with TestClient(app) as test_client:
        yield test_client

    conn = sqlite3.connect(DB_PATH)
    try:
        for table in ("check_logs", "tasks", "webhook_configs"):
            conn.execute(f"DELETE FROM {table}")
        conn.commit()
    finally:
        conn.close()
