"""Task schemas for API."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class TaskFields(BaseModel):
    """Fields shared by create and update requests."""
    name: str = Field(..., min_length=1, max_length=255)
    kind: str = Field(default="port", pattern="^(port|script)$")
    hostname: str = Field(..., min_length=1)
    port: Optional[int] = Field(None, ge=1, le=65535)
    username: Optional[str] = None
    password: Optional[str] = None
    command: Optional[str] = None
    interval_value: int = Field(..., ge=1)
    interval_unit: str = Field(..., pattern="^(seconds|minutes|hours)$")

    @model_validator(mode="after")
    def check_kind_fields(self):
        if self.kind == "port" and self.port is None:
            raise ValueError("port is required for port tasks")
        if self.kind == "script":
            missing = [f for f in ("username", "password", "command") if not getattr(self, f)]
            if missing:
                raise ValueError(f"{', '.join(missing)} required for script tasks")
        return self


class TaskCreate(TaskFields):
    """Schema for creating a new task."""


class TaskUpdate(TaskFields):
    """Schema for replacing a task's configuration."""


class TaskResponse(BaseModel):
    """Schema for task in API responses. The password is never returned."""
    id: int
    name: str
    kind: str
    hostname: str
    port: Optional[int] = None
    username: Optional[str] = None
    command: Optional[str] = None
    interval_value: int
    interval_unit: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CheckLogResponse(BaseModel):
    """A stored check result."""
    id: int
    task_id: int
    status: str
    response_time_ms: Optional[int] = None
    error_message: Optional[str] = None
    output: Optional[str] = None
    attempts: int
    checked_at: datetime

    class Config:
        from_attributes = True


class CheckResultResponse(BaseModel):
    """Result of an on-demand check."""
    task_id: int
    status: str
    attempts: int
    response_time_ms: Optional[int] = None
    error_message: Optional[str] = None
    output: Optional[str] = None
    checked_at: datetime


class MessageResponse(BaseModel):
    message: str
