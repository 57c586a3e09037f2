"""Tests for spike detection and alert feed merging."""

from datetime import datetime, timedelta, timezone

from llmobs.engine.alerts import (
    ERROR_RATE_SPIKE,
    AlertCall,
    StatusCount,
    call_alerts,
    detect_error_spikes,
    merge_alerts,
)
from llmobs.models import CallStatus
from llmobs.schemas.alerts import AlertEvent
from llmobs.storage.analytics import alert_feed

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
WINDOW_START = NOW - timedelta(minutes=10)


def _counts(model, ok, failed):
    return [StatusCount(model, CallStatus.SUCCESS, ok), StatusCount(model, CallStatus.FAIL, failed)]


def _event(fingerprint, ts, event_id="x"):
    return AlertEvent(
        id=event_id,
        ts=ts,
        severity="HIGH",
        category="RELIABILITY",
        event="TEST",
        summary="test",
        fingerprint=fingerprint,
    )


def test_no_spike_below_threshold():
    """Under 10% failures nothing fires."""
    assert detect_error_spikes(_counts("m", 19, 1), WINDOW_START, NOW) == []


def test_high_spike():
    """Between thresholds the spike is HIGH."""
    (event,) = detect_error_spikes(_counts("m", 9, 1), WINDOW_START, NOW)
    assert event.severity == "HIGH"
    assert event.event == ERROR_RATE_SPIKE
    assert event.fingerprint == "ERROR_RATE_SPIKE:m"
    assert event.details["error_rate"] == 10.0
    assert "10.0% in last 10m" in event.summary


def test_critical_spike():
    """At 20% and above the spike is CRITICAL."""
    (event,) = detect_error_spikes(_counts("m", 4, 1), WINDOW_START, NOW)
    assert event.severity == "CRITICAL"


def test_flagged_calls_do_not_count_as_failures():
    """Only FAIL feeds the failure percentage."""
    counts = [StatusCount("m", CallStatus.SUCCESS, 1), StatusCount("m", CallStatus.FLAGGED, 9)]
    assert detect_error_spikes(counts, WINDOW_START, NOW) == []


def test_spikes_per_model():
    """Each model is judged on its own totals."""
    counts = _counts("a", 1, 1) + _counts("b", 100, 1)
    events = detect_error_spikes(counts, WINDOW_START, NOW)
    assert [e.details["model"] for e in events] == ["a"]


def test_spike_id_is_stable_within_window():
    """Repeated detection in one window yields the same id and fingerprint."""
    first = detect_error_spikes(_counts("m", 1, 1), WINDOW_START, NOW)
    again = detect_error_spikes(_counts("m", 1, 1), WINDOW_START, NOW + timedelta(seconds=30))
    assert first[0].id == again[0].id
    assert first[0].fingerprint == again[0].fingerprint


def test_call_alerts():
    """FAIL is HIGH, FLAGGED is MEDIUM, SUCCESS is ignored."""
    calls = [
        AlertCall("1", "m", CallStatus.FAIL, NOW, "u1"),
        AlertCall("2", "m", CallStatus.FLAGGED, NOW),
        AlertCall("3", "m", CallStatus.SUCCESS, NOW),
    ]
    events = call_alerts(calls)
    assert [(e.id, e.severity, e.fingerprint) for e in events] == [
        ("1", "HIGH", "FAIL:m"),
        ("2", "MEDIUM", "FLAGGED:m"),
    ]
    assert events[1].details["user"] == "unknown"


def test_merge_keeps_most_recent_per_fingerprint():
    """Duplicates collapse to the newest event; feed is newest first."""
    older = _event("FAIL:m", NOW - timedelta(minutes=5), "old")
    newer = _event("FAIL:m", NOW - timedelta(minutes=1), "new")
    other = _event("FLAGGED:m", NOW - timedelta(minutes=3), "other")
    merged = merge_alerts([older, other], [newer])
    assert [e.id for e in merged] == ["new", "other"]


async def test_alert_feed_from_store(session_factory, make_calls):
    """Feed merges call alerts and spikes and de-duplicates them."""
    now = datetime.now(timezone.utc)
    await make_calls(
        {"model": "m1", "status": CallStatus.FAIL, "created_at": now - timedelta(minutes=2)},
        {"model": "m1", "status": CallStatus.FAIL, "created_at": now - timedelta(minutes=3)},
        {"model": "m1", "created_at": now - timedelta(minutes=4)},
        {"model": "m2", "status": CallStatus.FLAGGED, "created_at": now - timedelta(hours=2)},
        {"model": "m2", "status": CallStatus.FAIL, "created_at": now - timedelta(hours=30)},
    )
    async with session_factory() as db:
        feed = await alert_feed(db, now)

    fingerprints = [e.fingerprint for e in feed]
    assert fingerprints == ["ERROR_RATE_SPIKE:m1", "FAIL:m1", "FLAGGED:m2"]
    assert feed[0].severity == "CRITICAL"
    assert feed[1].ts > feed[2].ts
