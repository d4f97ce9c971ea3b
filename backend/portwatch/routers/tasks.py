"""Task CRUD and control API endpoints."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_scheduler
from ..models import Task, CheckLog
from ..schemas.task import (
    TaskCreate,
    TaskUpdate,
    TaskResponse,
    CheckLogResponse,
    CheckResultResponse,
    MessageResponse,
)
from ..services.scheduler import SchedulerService
from ..services.tasks import RunState, SchedulingError, task_from_model

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


async def _get_task_or_404(db: AsyncSession, task_id: int) -> Task:
    result = await db.execute(select(Task).where(Task.id == task_id))
    task = result.scalar_one_or_none()
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


def _kind_fields(data) -> dict:
    """Column values for the task kind; the other kind's columns are cleared."""
    if data.kind == "port":
        return {"port": data.port, "username": None, "password": None, "command": None}
    return {
        "port": None,
        "username": data.username,
        "password": data.password,
        "command": data.command,
    }


@router.get("", response_model=List[TaskResponse])
async def list_tasks(db: AsyncSession = Depends(get_db)):
    """List all tasks, newest first."""
    result = await db.execute(select(Task).order_by(Task.created_at.desc(), Task.id.desc()))
    return result.scalars().all()


@router.post("", response_model=TaskResponse, status_code=201)
async def create_task(data: TaskCreate, db: AsyncSession = Depends(get_db)):
    """Create a new task. Tasks are created stopped."""
    db_task = Task(
        name=data.name,
        kind=data.kind,
        hostname=data.hostname,
        interval_value=data.interval_value,
        interval_unit=data.interval_unit,
        status=RunState.STOPPED.value,
        **_kind_fields(data),
    )
    try:
        task_from_model(db_task)
    except SchedulingError as e:
        raise HTTPException(status_code=400, detail=str(e))

    db.add(db_task)
    await db.commit()
    await db.refresh(db_task)
    return db_task


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(task_id: int, db: AsyncSession = Depends(get_db)):
    """Get a specific task by ID."""
    return await _get_task_or_404(db, task_id)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    data: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    scheduler: SchedulerService = Depends(get_scheduler),
):
    """Update a task. A running task is rescheduled with the new configuration."""
    db_task = await _get_task_or_404(db, task_id)

    db_task.name = data.name
    db_task.kind = data.kind
    db_task.hostname = data.hostname
    db_task.interval_value = data.interval_value
    db_task.interval_unit = data.interval_unit
    for key, value in _kind_fields(data).items():
        setattr(db_task, key, value)

    try:
        task = task_from_model(db_task)
    except SchedulingError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    await db.commit()
    await db.refresh(db_task)

    if db_task.status == RunState.RUNNING.value:
        scheduler.start_task(task)
    return db_task


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    scheduler: SchedulerService = Depends(get_scheduler),
):
    """Stop a task and delete it together with its logs."""
    await _get_task_or_404(db, task_id)
    scheduler.stop_task(task_id)

    await db.execute(delete(CheckLog).where(CheckLog.task_id == task_id))
    await db.execute(delete(Task).where(Task.id == task_id))
    await db.commit()
    return MessageResponse(message="Task deleted")


@router.post("/{task_id}/start", response_model=TaskResponse)
async def start_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    scheduler: SchedulerService = Depends(get_scheduler),
):
    """Start (or restart) a task's timer."""
    db_task = await _get_task_or_404(db, task_id)
    try:
        task = task_from_model(db_task)
    except SchedulingError as e:
        raise HTTPException(status_code=400, detail=str(e))

    db_task.status = RunState.RUNNING.value
    await db.commit()
    await db.refresh(db_task)

    scheduler.start_task(task)
    return db_task


@router.post("/{task_id}/stop", response_model=TaskResponse)
async def stop_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    scheduler: SchedulerService = Depends(get_scheduler),
):
    """Stop a task's timer. Stopping a stopped task is a no-op."""
    db_task = await _get_task_or_404(db, task_id)
    scheduler.stop_task(task_id)

    db_task.status = RunState.STOPPED.value
    await db.commit()
    await db.refresh(db_task)
    return db_task


@router.post("/{task_id}/check", response_model=CheckResultResponse)
async def check_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    scheduler: SchedulerService = Depends(get_scheduler),
):
    """Run a task's check immediately and return the result."""
    db_task = await _get_task_or_404(db, task_id)
    try:
        task = task_from_model(db_task)
    except SchedulingError as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = await scheduler.run_once(task)
    return CheckResultResponse(
        task_id=result.task_id,
        status=result.outcome.value,
        attempts=result.attempts,
        response_time_ms=result.response_time_ms,
        error_message=result.error_detail,
        output=result.output,
        checked_at=result.timestamp,
    )


@router.get("/{task_id}/logs", response_model=List[CheckLogResponse])
async def get_task_logs(
    task_id: int,
    limit: int = Query(50, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    """Most recent check results for a task."""
    await _get_task_or_404(db, task_id)
    result = await db.execute(
        select(CheckLog)
        .where(CheckLog.task_id == task_id)
        .order_by(CheckLog.checked_at.desc(), CheckLog.id.desc())
        .limit(limit)
    )
    return result.scalars().all()
