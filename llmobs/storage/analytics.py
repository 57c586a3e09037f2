"""Group-by queries behind the dashboard, summary and alert endpoints."""

from datetime import datetime, timedelta

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from llmobs.engine.aggregation import EvalRow, safe_ratio, summarize_evaluations
from llmobs.engine.alerts import AlertCall, StatusCount, call_alerts, detect_error_spikes, merge_alerts
from llmobs.models import CallStatus, EvalResult, LoggedCall
from llmobs.schemas.alerts import AlertEvent
from llmobs.schemas.analytics import (
    ActivityItem,
    DailyRollup,
    EvaluationSummary,
    MetricsSummary,
    ModelRollup,
    RealtimeSnapshot,
    ReportSummary,
    StatusHistogram,
    UserRollup,
)
from llmobs.storage.repositories import TimeWindow

_errors = func.sum(case((LoggedCall.status != CallStatus.SUCCESS, 1), else_=0))


def _f(value) -> float:
    return float(value or 0)


async def by_model(
    db: AsyncSession, window: TimeWindow | None = None, models: list[str] | None = None
) -> list[ModelRollup]:
    """Calls, latency, cost and error rate per model."""
    stmt = select(
        LoggedCall.model,
        func.count().label("calls"),
        func.avg(LoggedCall.latency_ms).label("avg_latency"),
        func.avg(LoggedCall.cost_usd).label("avg_cost"),
        func.sum(LoggedCall.cost_usd).label("total_cost"),
        _errors.label("errors"),
    )
    if window:
        stmt = window.apply(stmt, LoggedCall.created_at)
    if models:
        stmt = stmt.where(LoggedCall.model.in_(models))
    stmt = stmt.group_by(LoggedCall.model).order_by(LoggedCall.model)

    result = await db.execute(stmt)
    return [
        ModelRollup(
            model=r.model,
            calls=r.calls,
            avg_latency_ms=round(_f(r.avg_latency)),
            avg_cost_usd=_f(r.avg_cost),
            total_cost_usd=_f(r.total_cost),
            error_rate=safe_ratio(_f(r.errors), r.calls),
        )
        for r in result
    ]


async def by_user(db: AsyncSession, window: TimeWindow | None = None) -> list[UserRollup]:
    """Calls, latency, spend and error rate per user."""
    stmt = select(
        LoggedCall.user_id,
        func.count().label("calls"),
        func.avg(LoggedCall.latency_ms).label("avg_latency"),
        func.sum(LoggedCall.cost_usd).label("total_cost"),
        _errors.label("errors"),
    )
    if window:
        stmt = window.apply(stmt, LoggedCall.created_at)
    stmt = stmt.group_by(LoggedCall.user_id).order_by(LoggedCall.user_id)

    result = await db.execute(stmt)
    return [
        UserRollup(
            user=r.user_id or "anon",
            calls=r.calls,
            avg_latency_ms=round(_f(r.avg_latency)),
            total_cost_usd=_f(r.total_cost),
            error_rate=safe_ratio(_f(r.errors), r.calls),
        )
        for r in result
    ]


async def daily(db: AsyncSession, window: TimeWindow) -> list[DailyRollup]:
    """One row per calendar day that has calls, oldest first."""
    day = func.date(LoggedCall.created_at)
    stmt = select(
        day.label("day"),
        func.count().label("calls"),
        func.avg(LoggedCall.latency_ms).label("avg_latency"),
        func.sum(LoggedCall.cost_usd).label("cost"),
        _errors.label("errors"),
    )
    stmt = window.apply(stmt, LoggedCall.created_at).group_by(day).order_by(day)

    result = await db.execute(stmt)
    return [
        DailyRollup(
            date=str(r.day)[:10],
            calls=r.calls,
            avg_latency_ms=round(_f(r.avg_latency)),
            cost_usd=_f(r.cost),
            errors=int(r.errors or 0),
            error_rate=safe_ratio(_f(r.errors), r.calls),
        )
        for r in result
    ]


async def metrics_summary(db: AsyncSession, window: TimeWindow | None = None) -> MetricsSummary:
    """Totals, rates and the status histogram."""
    stmt = select(
        func.count().label("total"),
        func.avg(LoggedCall.latency_ms).label("avg_latency"),
        func.avg(LoggedCall.cost_usd).label("avg_cost"),
        func.sum(LoggedCall.cost_usd).label("total_cost"),
        _errors.label("errors"),
        func.sum(case((LoggedCall.hallucinated.is_(True), 1), else_=0)).label("hallucinated"),
        func.sum(case((LoggedCall.toxic.is_(True), 1), else_=0)).label("toxic"),
    )
    status_stmt = select(LoggedCall.status, func.count().label("n"))
    if window:
        stmt = window.apply(stmt, LoggedCall.created_at)
        status_stmt = window.apply(status_stmt, LoggedCall.created_at)
    status_stmt = status_stmt.group_by(LoggedCall.status)

    row = (await db.execute(stmt)).one()
    statuses = {r.status: r.n for r in await db.execute(status_stmt)}
    total = row.total or 0
    return MetricsSummary(
        total=total,
        avg_latency_ms=round(_f(row.avg_latency)),
        avg_cost_usd=_f(row.avg_cost),
        total_cost_usd=_f(row.total_cost),
        error_rate=safe_ratio(_f(row.errors), total),
        hallucination_rate=safe_ratio(_f(row.hallucinated), total),
        toxicity_rate=safe_ratio(_f(row.toxic), total),
        statuses=StatusHistogram(
            SUCCESS=statuses.get(CallStatus.SUCCESS, 0),
            FAIL=statuses.get(CallStatus.FAIL, 0),
            FLAGGED=statuses.get(CallStatus.FLAGGED, 0),
        ),
    )


async def report_summary(db: AsyncSession, window: TimeWindow | None = None) -> ReportSummary:
    summary = await metrics_summary(db, window)
    return ReportSummary(
        total_calls=summary.total,
        estimated_cost_usd=summary.total_cost_usd,
        avg_latency_ms=summary.avg_latency_ms,
        hallucination_rate=summary.hallucination_rate,
        failures=summary.statuses.FAIL + summary.statuses.FLAGGED,
    )


async def realtime_snapshot(db: AsyncSession, now: datetime) -> RealtimeSnapshot:
    """Live counters; the same payload backs polling and streaming."""
    totals = (
        await db.execute(select(func.count().label("n"), func.avg(LoggedCall.latency_ms).label("avg")))
    ).one()
    errors = await db.scalar(
        select(func.count()).where(
            LoggedCall.status != CallStatus.SUCCESS,
            LoggedCall.created_at >= now - timedelta(hours=1),
        )
    )
    recent = (
        await db.execute(
            select(LoggedCall.status, LoggedCall.latency_ms, LoggedCall.cost_usd, LoggedCall.created_at)
            .where(LoggedCall.created_at >= now - timedelta(minutes=5))
            .order_by(LoggedCall.created_at.desc())
            .limit(20)
        )
    ).all()
    return RealtimeSnapshot(
        total_calls=totals.n or 0,
        recent_calls=len(recent),
        avg_latency_ms=round(_f(totals.avg)),
        error_count=errors or 0,
        recent_cost_usd=sum(_f(r.cost_usd) for r in recent),
        last_update=now,
        recent_activity=[
            ActivityItem(status=r.status, latency_ms=r.latency_ms, cost_usd=_f(r.cost_usd), timestamp=r.created_at)
            for r in recent[:5]
        ],
    )


async def evaluation_rows(db: AsyncSession, window: TimeWindow) -> list[EvalRow]:
    stmt = (
        select(
            EvalResult.call_id,
            EvalResult.kind,
            EvalResult.passed,
            EvalResult.score,
            EvalResult.created_at,
            LoggedCall.created_at.label("call_created_at"),
        )
        .outerjoin(LoggedCall, LoggedCall.id == EvalResult.call_id)
        .order_by(EvalResult.created_at.desc())
    )
    stmt = window.apply(stmt, EvalResult.created_at)
    result = await db.execute(stmt)
    return [
        EvalRow(
            call_id=r.call_id,
            kind=r.kind,
            passed=r.passed,
            score=r.score,
            created_at=r.created_at,
            call_created_at=r.call_created_at,
        )
        for r in result
    ]


async def evaluation_summary(
    db: AsyncSession,
    now: datetime,
    days: int = 30,
    top: int = 10,
    window: TimeWindow | None = None,
) -> EvaluationSummary:
    """
    Pass rates by kind, 7-day trend and the riskiest calls. Bounds from
    ``window`` take precedence; an open start falls back to the last ``days``.
    """
    window = window or TimeWindow()
    rows = await evaluation_rows(
        db, TimeWindow(start=window.start or now - timedelta(days=days), end=window.end)
    )
    return summarize_evaluations(rows, now, top=top)


async def alert_feed(
    db: AsyncSession,
    now: datetime,
    lookback_hours: int = 24,
    window_minutes: int = 10,
    threshold_pct: float = 10.0,
    critical_pct: float = 20.0,
    limit: int = 100,
) -> list[AlertEvent]:
    """FAIL/FLAGGED calls from the lookback period merged with active error spikes."""
    since = now - timedelta(hours=lookback_hours)
    rows = await db.execute(
        select(LoggedCall.id, LoggedCall.model, LoggedCall.status, LoggedCall.created_at, LoggedCall.user_id)
        .where(
            LoggedCall.created_at >= since,
            LoggedCall.status.in_([CallStatus.FAIL, CallStatus.FLAGGED]),
        )
        .order_by(LoggedCall.created_at.desc())
        .limit(limit)
    )
    calls = [
        AlertCall(id=r.id, model=r.model, status=r.status, created_at=r.created_at, user_id=r.user_id)
        for r in rows
    ]

    window_start = now - timedelta(minutes=window_minutes)
    grouped = await db.execute(
        select(LoggedCall.model, LoggedCall.status, func.count().label("n"))
        .where(LoggedCall.created_at >= window_start)
        .group_by(LoggedCall.model, LoggedCall.status)
    )
    counts = [StatusCount(model=r.model, status=r.status, count=r.n) for r in grouped]

    spikes = detect_error_spikes(
        counts,
        window_start=window_start,
        now=now,
        window_minutes=window_minutes,
        threshold_pct=threshold_pct,
        critical_pct=critical_pct,
    )
    return merge_alerts(spikes, call_alerts(calls))
