"""Task variants and check results shared by the monitoring engine.

A task is either a ``PortTask`` (TCP reachability) or a ``ScriptTask``
(command over SSH). Kind-specific fields are enforced when the variant is
built, so the rest of the engine never checks for missing columns.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from apscheduler.triggers.interval import IntervalTrigger


class SchedulingError(ValueError):
    """Task configuration that cannot be scheduled or checked."""


class TaskKind(str, Enum):
    PORT = "port"
    SCRIPT = "script"


class IntervalUnit(str, Enum):
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"


class RunState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class CheckOutcome(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class Interval:
    """Check cadence as a positive count of seconds, minutes or hours."""
    value: int
    unit: IntervalUnit

    def __post_init__(self):
        try:
            unit = IntervalUnit(self.unit)
        except ValueError:
            raise SchedulingError(f"Invalid interval unit: {self.unit!r}") from None
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise SchedulingError(f"Interval value must be an integer, got {self.value!r}")
        if self.value <= 0:
            raise SchedulingError(f"Interval value must be positive, got {self.value}")
        object.__setattr__(self, "unit", unit)

    @classmethod
    def parse(cls, value, unit) -> "Interval":
        return cls(value=value, unit=unit)

    def trigger(self) -> IntervalTrigger:
        """APScheduler trigger firing every ``value`` ``unit``."""
        return IntervalTrigger(**{self.unit.value: self.value})

    @property
    def total_seconds(self) -> int:
        multiplier = {
            IntervalUnit.SECONDS: 1,
            IntervalUnit.MINUTES: 60,
            IntervalUnit.HOURS: 3600,
        }[self.unit]
        return self.value * multiplier

    def __str__(self) -> str:
        return f"{self.value} {self.unit.value}"


@dataclass(frozen=True)
class Credentials:
    username: str
    secret: str = field(repr=False)


@dataclass(frozen=True)
class PortTask:
    id: int
    name: str
    host: str
    port: int
    interval: Interval

    kind = TaskKind.PORT

    @property
    def target(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class ScriptTask:
    id: int
    name: str
    host: str
    credentials: Credentials
    command: str
    interval: Interval

    kind = TaskKind.SCRIPT

    @property
    def target(self) -> str:
        return self.host


Task = Union[PortTask, ScriptTask]


@dataclass(frozen=True)
class CheckResult:
    """Normalized outcome of one check. Never mutated after creation."""
    task_id: int
    outcome: CheckOutcome
    attempts: int = 1
    response_time_ms: Optional[int] = None
    error_detail: Optional[str] = None
    output: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def failed(self) -> bool:
        return self.outcome == CheckOutcome.FAILED


def build_task(
    id: int,
    name: str,
    kind: str,
    hostname: Optional[str],
    interval_value,
    interval_unit,
    port: Optional[int] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    command: Optional[str] = None,
) -> Task:
    """Build a task variant, raising SchedulingError on invalid configuration."""
    interval = Interval.parse(interval_value, interval_unit)

    if not hostname or not hostname.strip():
        raise SchedulingError("hostname is required")
    hostname = hostname.strip()

    try:
        task_kind = TaskKind(kind)
    except ValueError:
        raise SchedulingError(f"Invalid task kind: {kind!r}") from None

    if task_kind == TaskKind.PORT:
        if port is None:
            raise SchedulingError("port is required for port tasks")
        try:
            port = int(port)
        except (TypeError, ValueError):
            raise SchedulingError(f"Invalid port: {port!r}") from None
        if not 1 <= port <= 65535:
            raise SchedulingError(f"port out of range: {port}")
        return PortTask(id=id, name=name, host=hostname, port=port, interval=interval)

    missing = [
        label for label, value in (
            ("username", username), ("password", password), ("command", command),
        )
        if not value
    ]
    if missing:
        raise SchedulingError(f"{', '.join(missing)} required for script tasks")
    return ScriptTask(
        id=id,
        name=name,
        host=hostname,
        credentials=Credentials(username=username, secret=password),
        command=command,
        interval=interval,
    )


def task_from_model(model) -> Task:
    """Convert a persisted ``models.Task`` row into a task variant."""
    return build_task(
        id=model.id,
        name=model.name,
        kind=model.kind,
        hostname=model.hostname,
        interval_value=model.interval_value,
        interval_unit=model.interval_unit,
        port=model.port,
        username=model.username,
        password=model.password,
        command=model.command,
    )
