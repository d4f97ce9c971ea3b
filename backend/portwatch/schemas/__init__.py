"""Pydantic schemas for API request/response models."""
from .task import (
    TaskCreate,
    TaskUpdate,
    TaskResponse,
    CheckLogResponse,
    CheckResultResponse,
    MessageResponse,
)
from .webhook import (
    WebhookConfigUpdate,
    WebhookConfigResponse,
)

__all__ = [
    "TaskCreate",
    "TaskUpdate",
    "TaskResponse",
    "CheckLogResponse",
    "CheckResultResponse",
    "MessageResponse",
    "WebhookConfigUpdate",
    "WebhookConfigResponse",
]
