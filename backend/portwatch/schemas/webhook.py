"""Webhook configuration schemas."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class WebhookConfigUpdate(BaseModel):
    webhook_url: str = Field(..., min_length=1, pattern=r"^https?://")


class WebhookConfigResponse(BaseModel):
    """Active webhook; empty when none has been saved."""
    id: Optional[int] = None
    webhook_url: Optional[str] = None
    created_at: Optional[datetime] = None
