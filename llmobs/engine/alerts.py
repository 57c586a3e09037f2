"""Error-spike detection and alert feed merging."""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from urllib.parse import quote

from llmobs.engine.aggregation import as_utc
from llmobs.models import CallStatus
from llmobs.schemas.alerts import AlertEvent

ERROR_RATE_SPIKE = "ERROR_RATE_SPIKE"
MODEL_CALL_FAILED = "MODEL_CALL_FAILED"
FLAGGED_CONTENT = "FLAGGED_CONTENT"


@dataclass(frozen=True)
class StatusCount:
    """Calls per (model, status) inside the spike window."""

    model: str
    status: str
    count: int


@dataclass(frozen=True)
class AlertCall:
    id: str
    model: str
    status: str
    created_at: datetime
    user_id: str | None = None


def spike_fingerprint(model: str) -> str:
    return f"{ERROR_RATE_SPIKE}:{model}"


def detect_error_spikes(
    counts: Iterable[StatusCount],
    window_start: datetime,
    now: datetime,
    window_minutes: int = 10,
    threshold_pct: float = 10.0,
    critical_pct: float = 20.0,
) -> list[AlertEvent]:
    """
    Failure percentage per model over the window. At or above threshold_pct
    a HIGH event is emitted, at or above critical_pct it is CRITICAL.
    """
    totals: dict[str, int] = defaultdict(int)
    failures: dict[str, int] = defaultdict(int)
    for c in counts:
        totals[c.model] += c.count
        if c.status == CallStatus.FAIL:
            failures[c.model] += c.count

    window_label = f"{window_minutes}m"
    window_key = int(as_utc(window_start).timestamp() * 1000)
    events = []
    for model in sorted(failures):
        err_pct = failures[model] / max(1, totals[model]) * 100
        if err_pct < threshold_pct:
            continue
        events.append(
            AlertEvent(
                id=f"errspike-{model}-{window_key}",
                ts=as_utc(now),
                severity="CRITICAL" if err_pct >= critical_pct else "HIGH",
                category="RELIABILITY",
                event=ERROR_RATE_SPIKE,
                summary=f"Error spike on {model}: {err_pct:.1f}% in last {window_label}",
                details={"model": model, "window": window_label, "error_rate": err_pct},
                href=f"/dashboard/analytics?focus=model:{quote(model, safe='')}",
                fingerprint=spike_fingerprint(model),
            )
        )
    return events


def call_alerts(calls: Iterable[AlertCall]) -> list[AlertEvent]:
    """Point-in-time events for individual FAIL and FLAGGED calls."""
    events = []
    for call in calls:
        if call.status == CallStatus.FAIL:
            severity, event, summary = "HIGH", MODEL_CALL_FAILED, f"Call failed on {call.model}"
        elif call.status == CallStatus.FLAGGED:
            severity, event, summary = "MEDIUM", FLAGGED_CONTENT, f"Flagged content on {call.model}"
        else:
            continue
        events.append(
            AlertEvent(
                id=call.id,
                ts=as_utc(call.created_at),
                severity=severity,
                category="RELIABILITY",
                event=event,
                summary=summary,
                details={"model": call.model, "user": call.user_id or "unknown"},
                href=f"/dashboard/logs?id={call.id}",
                fingerprint=f"{call.status}:{call.model}",
            )
        )
    return events


def merge_alerts(*sources: Iterable[AlertEvent]) -> list[AlertEvent]:
    """Newest first; one event per fingerprint, keeping the most recent."""
    combined = [event for source in sources for event in source]
    combined.sort(key=lambda e: as_utc(e.ts), reverse=True)
    seen: set[str] = set()
    merged = []
    for event in combined:
        if event.fingerprint in seen:
            continue
        seen.add(event.fingerprint)
        merged.append(event)
    return merged
