"""Alert feed endpoint."""

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from llmobs.config import settings
from llmobs.database import get_db
from llmobs.schemas.alerts import AlertEvent
from llmobs.storage.analytics import alert_feed

router = APIRouter()


@router.get("/notifications", response_model=list[AlertEvent])
async def notifications(
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """De-duplicated, newest-first alerts: failed/flagged calls plus active error spikes."""
    response.headers["Cache-Control"] = "no-store"
    return await alert_feed(
        db,
        datetime.now(timezone.utc),
        lookback_hours=settings.alert_lookback_hours,
        window_minutes=settings.alert_window_minutes,
        threshold_pct=settings.spike_threshold_pct,
        critical_pct=settings.spike_critical_pct,
    )
