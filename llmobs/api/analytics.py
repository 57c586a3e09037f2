"""Dashboard rollup endpoints."""

from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from llmobs.api.params import FromDate, ToDate, window_from_dates
from llmobs.database import get_db
from llmobs.schemas.analytics import (
    DailyRollupResponse,
    MetricsSummary,
    ModelRollup,
    ReportSummary,
    UserRollup,
)
from llmobs.storage import analytics

router = APIRouter()

DEFAULT_DAILY_SPAN_DAYS = 14


@router.get("/analytics/models", response_model=list[ModelRollup])
async def models_rollup(
    db: Annotated[AsyncSession, Depends(get_db)],
    start: FromDate = None,
    end: ToDate = None,
    model: Annotated[list[str] | None, Query()] = None,
):
    """Per-model calls, latency, cost and error rate."""
    return await analytics.by_model(db, window_from_dates(start, end), models=model)


@router.get("/analytics/users", response_model=list[UserRollup])
async def users_rollup(
    db: Annotated[AsyncSession, Depends(get_db)],
    start: FromDate = None,
    end: ToDate = None,
):
    """Per-user calls, latency, spend and error rate."""
    return await analytics.by_user(db, window_from_dates(start, end))


@router.get("/analytics/daily", response_model=DailyRollupResponse)
async def daily_rollup(
    db: Annotated[AsyncSession, Depends(get_db)],
    start: FromDate = None,
    end: ToDate = None,
):
    """Daily rollup, last 14 days by default."""
    end = end or datetime.now(timezone.utc).date()
    start = start or end - timedelta(days=DEFAULT_DAILY_SPAN_DAYS - 1)
    window = window_from_dates(start, end)
    return DailyRollupResponse(start=window.start, end=window.end, data=await analytics.daily(db, window))


@router.get("/metrics/summary", response_model=MetricsSummary)
async def metrics_summary(
    db: Annotated[AsyncSession, Depends(get_db)],
    start: FromDate = None,
    end: ToDate = None,
):
    """Totals, rates and status histogram."""
    return await analytics.metrics_summary(db, window_from_dates(start, end))


@router.get("/report/summary", response_model=ReportSummary)
async def report_summary(
    db: Annotated[AsyncSession, Depends(get_db)],
    start: FromDate = None,
    end: ToDate = None,
):
    """Headline figures for the compliance report."""
    return await analytics.report_summary(db, window_from_dates(start, end))
