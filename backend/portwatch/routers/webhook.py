"""Webhook configuration API endpoints."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_scheduler
from ..models import WebhookConfig
from ..schemas.task import MessageResponse
from ..schemas.webhook import WebhookConfigUpdate, WebhookConfigResponse
from ..services.scheduler import SchedulerService

router = APIRouter(prefix="/api/webhook", tags=["webhook"])


async def _latest_config(db: AsyncSession):
    result = await db.execute(
        select(WebhookConfig).order_by(WebhookConfig.id.desc()).limit(1)
    )
    return result.scalar_one_or_none()


@router.get("/config", response_model=WebhookConfigResponse)
async def get_webhook_config(db: AsyncSession = Depends(get_db)):
    """Get the active webhook configuration."""
    config = await _latest_config(db)
    if not config:
        return WebhookConfigResponse()
    return WebhookConfigResponse(
        id=config.id,
        webhook_url=config.webhook_url,
        created_at=config.created_at,
    )


@router.post("/config", response_model=WebhookConfigResponse)
async def save_webhook_config(data: WebhookConfigUpdate, db: AsyncSession = Depends(get_db)):
    """Save a webhook URL. The newest saved URL is used for alerts."""
    config = WebhookConfig(webhook_url=data.webhook_url)
    db.add(config)
    await db.commit()
    await db.refresh(config)
    return WebhookConfigResponse(
        id=config.id,
        webhook_url=config.webhook_url,
        created_at=config.created_at,
    )


@router.post("/test", response_model=MessageResponse)
async def send_test_alert(
    db: AsyncSession = Depends(get_db),
    scheduler: SchedulerService = Depends(get_scheduler),
):
    """Send a sample alert to the configured webhook."""
    if not await _latest_config(db):
        raise HTTPException(status_code=400, detail="Webhook not configured")

    if not await scheduler.alerter.send_test_alert():
        raise HTTPException(status_code=502, detail="Webhook delivery failed")
    return MessageResponse(message="Test alert sent")
