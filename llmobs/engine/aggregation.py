"""Pure rollup math over calls and evaluation results.

Everything here is a projection: no identity, no I/O. Empty groups give
zeros (or a 100% pass rate), never a division error.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from llmobs.schemas.analytics import (
    DailyTrend,
    EvalKindSummary,
    EvaluationSummary,
    RiskyCall,
)

RISK_PER_FAILED_KIND = 25
MAX_RISK_SCORE = 100
TREND_DAYS = 7


@dataclass(frozen=True)
class EvalRow:
    """The slice of an EvalResult the summaries need."""

    call_id: str
    kind: str
    passed: bool
    score: float
    created_at: datetime
    call_created_at: datetime | None = None


def safe_ratio(part: float, whole: float) -> float:
    return part / whole if whole else 0.0


def pass_rate_pct(passed: int, total: int) -> float:
    """Percentage of passing results; an empty group has nothing failing."""
    return passed / total * 100 if total else 100.0


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def risk_score(failed_kinds: int) -> int:
    return min(failed_kinds * RISK_PER_FAILED_KIND, MAX_RISK_SCORE)


def rank_risky_calls(rows: Iterable[EvalRow], top: int = 10) -> list[RiskyCall]:
    """Calls with at least one failing kind, highest risk first, ties by call id."""
    failed: dict[str, set[str]] = defaultdict(set)
    first_seen: dict[str, datetime] = {}
    for row in rows:
        if row.passed:
            continue
        failed[row.call_id].add(row.kind)
        first_seen.setdefault(row.call_id, as_utc(row.call_created_at or row.created_at))

    risky = [
        RiskyCall(
            call_id=call_id,
            timestamp=first_seen[call_id],
            failed_evals=sorted(kinds),
            risk_score=risk_score(len(kinds)),
        )
        for call_id, kinds in failed.items()
    ]
    risky.sort(key=lambda r: (-r.risk_score, r.call_id))
    return risky[:top]


def summarize_by_kind(rows: Iterable[EvalRow]) -> dict[str, EvalKindSummary]:
    grouped: dict[str, list[EvalRow]] = defaultdict(list)
    for row in rows:
        grouped[row.kind].append(row)

    summary = {}
    for kind, items in sorted(grouped.items()):
        total = len(items)
        passed = sum(1 for r in items if r.passed)
        summary[kind] = EvalKindSummary(
            total=total,
            passed=passed,
            failed=total - passed,
            pass_rate=round(pass_rate_pct(passed, total), 2),
            avg_score=round(safe_ratio(sum(r.score for r in items), total), 2),
        )
    return summary


def daily_trend(rows: Iterable[EvalRow], today: date, days: int = TREND_DAYS) -> list[DailyTrend]:
    """One bucket per UTC day ending today, oldest first; empty days included."""
    buckets: dict[date, list[bool]] = {today - timedelta(days=i): [] for i in range(days)}
    for row in rows:
        day = as_utc(row.created_at).date()
        if day in buckets:
            buckets[day].append(row.passed)

    trend = []
    for day in sorted(buckets):
        outcomes = buckets[day]
        passed = sum(outcomes)
        trend.append(
            DailyTrend(
                date=day.isoformat(),
                total=len(outcomes),
                passed=passed,
                pass_rate=round(pass_rate_pct(passed, len(outcomes)), 2),
            )
        )
    return trend


def summarize_evaluations(
    rows: list[EvalRow], now: datetime, top: int = 10
) -> EvaluationSummary:
    total = len(rows)
    passed = sum(1 for r in rows if r.passed)
    return EvaluationSummary(
        total_evaluations=total,
        overall_pass_rate=round(pass_rate_pct(passed, total), 2),
        by_kind=summarize_by_kind(rows),
        recent_trends=daily_trend(rows, as_utc(now).date()),
        risky_calls=rank_risky_calls(rows, top=top),
    )
