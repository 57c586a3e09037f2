"""Tests for the evaluation orchestrator against a SQLite store."""

import asyncio

import pytest
from sqlalchemy import func, select

from llmobs.engine.detectors import CheckResult, default_detectors
from llmobs.engine.grounding import GroundednessDetector
from llmobs.engine.orchestrator import EvaluationOrchestrator
from llmobs.errors import EmbeddingDimensionError, EmbeddingServiceError
from llmobs.models import CallStatus, EvalKind, EvalResult, LoggedCall
from llmobs.storage.knowledge import Evidence

SYNC_KINDS = {EvalKind.TOXICITY, EvalKind.PII, EvalKind.INJECTION, EvalKind.HALLUCINATION}


class StaticEmbedder:
    dimensions = 3

    def __init__(self, error=None):
        self.error = error

    async def embed(self, text):
        if self.error:
            raise self.error
        return [0.0, 0.0, 1.0]


class StaticStore:
    dimensions = 3

    async def nearest(self, vector, k):
        return [Evidence("kb-1", "Geo", "Paris is the capital and largest city of France")]


class NullScoreDetector:
    """Produces an invalid row for one prompt so its write fails."""

    kind = "CUSTOM"

    def check(self, prompt, response):
        score = None if prompt == "boom" else 1.0
        return CheckResult(kind=self.kind, passed=True, score=score, details="custom")


async def _results(session_factory):
    async with session_factory() as db:
        rows = await db.execute(select(EvalResult).order_by(EvalResult.call_id, EvalResult.kind))
        return [(r.call_id, r.kind, r.passed, r.score, r.details) for r in rows.scalars()]


async def _call(session_factory, call_id):
    async with session_factory() as db:
        return await db.get(LoggedCall, call_id)


async def test_writes_one_result_per_kind(session_factory, make_calls):
    """Each call gets one row per detector kind."""
    calls = await make_calls({"prompt": "What is the capital of France?", "response": "Paris"})
    report = await EvaluationOrchestrator(session_factory, concurrency=1).evaluate(calls)

    assert report.evaluated == 1
    assert report.skipped == []
    kinds = {kind for _, kind, *_ in await _results(session_factory)}
    assert kinds == SYNC_KINDS


async def test_idempotent_rerun(session_factory, make_calls):
    """Running twice leaves the same rows and values."""
    calls = await make_calls(
        {"prompt": "What is the capital of France?", "response": "Lyon"},
        {"prompt": "hello", "response": "I hate mondays"},
        {"prompt": "hello", "response": "fine"},
    )
    orchestrator = EvaluationOrchestrator(session_factory, concurrency=1)

    first = await orchestrator.evaluate(calls)
    rows_first = await _results(session_factory)
    second = await orchestrator.evaluate(calls)
    rows_second = await _results(session_factory)

    assert first.evaluated == second.evaluated == 3
    assert len(rows_first) == 3 * len(SYNC_KINDS)
    assert rows_first == rows_second
    assert first.flagged == 2
    assert second.flagged == 0


async def test_failing_eval_flags_success_call(session_factory, make_calls):
    """A failing detector moves SUCCESS to FLAGGED and syncs the flags."""
    (call,) = await make_calls({"prompt": "What is the capital of France?", "response": "I hate Lyon"})
    await EvaluationOrchestrator(session_factory, concurrency=1).evaluate([call])

    stored = await _call(session_factory, call.id)
    assert stored.status == CallStatus.FLAGGED
    assert stored.toxic is True
    assert stored.hallucinated is True


async def test_passing_call_stays_success(session_factory, make_calls):
    """Clean calls keep SUCCESS and false flags."""
    (call,) = await make_calls({"prompt": "What is the capital of France?", "response": "Paris"})
    await EvaluationOrchestrator(session_factory, concurrency=1).evaluate([call])

    stored = await _call(session_factory, call.id)
    assert stored.status == CallStatus.SUCCESS
    assert stored.toxic is False
    assert stored.hallucinated is False


async def test_fail_status_is_never_changed(session_factory, make_calls):
    """FAIL set by the logging layer survives a failing evaluation."""
    (call,) = await make_calls({"response": "you idiot", "status": CallStatus.FAIL})
    await EvaluationOrchestrator(session_factory, concurrency=1).evaluate([call])

    stored = await _call(session_factory, call.id)
    assert stored.status == CallStatus.FAIL
    assert stored.toxic is True


async def test_flagged_is_not_reverted(session_factory, make_calls):
    """A clean re-evaluation does not bring FLAGGED back to SUCCESS."""
    (call,) = await make_calls({"response": "fine", "status": CallStatus.FLAGGED})
    await EvaluationOrchestrator(session_factory, concurrency=1).evaluate([call])

    assert (await _call(session_factory, call.id)).status == CallStatus.FLAGGED


async def test_grounding_result_written(session_factory, make_calls):
    """Grounding runs after the synchronous detectors and is persisted."""
    (call,) = await make_calls({"response": "Paris remains the capital city of France"})
    grounding = GroundednessDetector(StaticEmbedder(), StaticStore(), k=1)
    await EvaluationOrchestrator(session_factory, grounding=grounding, concurrency=1).evaluate([call])

    rows = {kind: passed for _, kind, passed, *_ in await _results(session_factory)}
    assert rows[EvalKind.GROUNDING] is True
    assert set(rows) == SYNC_KINDS | {EvalKind.GROUNDING}


@pytest.mark.parametrize(
    "error, reason",
    [
        (EmbeddingServiceError("connection refused"), "embedding unavailable"),
        (EmbeddingDimensionError(3, 2), "dimension mismatch"),
    ],
)
async def test_embedding_failure_isolated(session_factory, make_calls, error, reason):
    """An embedding failure skips only GROUNDING and does not flag the call."""
    calls = await make_calls({"response": "fine"}, {"response": "also fine"})
    grounding = GroundednessDetector(StaticEmbedder(error), StaticStore())
    report = await EvaluationOrchestrator(session_factory, grounding=grounding, concurrency=1).evaluate(calls)

    assert report.evaluated == 2
    assert {(s.call_id, s.kind) for s in report.skipped} == {(c.id, EvalKind.GROUNDING) for c in calls}
    assert all(s.reason.startswith(reason) for s in report.skipped)

    rows = await _results(session_factory)
    assert len(rows) == 2 * len(SYNC_KINDS)
    assert all(kind != EvalKind.GROUNDING for _, kind, *_ in rows)
    for call in calls:
        assert (await _call(session_factory, call.id)).status == CallStatus.SUCCESS


async def test_persistence_failure_isolated_to_call(session_factory, make_calls):
    """A write failure rolls back that call only; siblings complete."""
    bad, good = await make_calls({"prompt": "boom", "response": "I hate this"}, {"prompt": "ok"})
    detectors = default_detectors() + [NullScoreDetector()]
    report = await EvaluationOrchestrator(session_factory, detectors=detectors, concurrency=1).evaluate(
        [bad, good]
    )

    assert report.evaluated == 1
    assert [(s.call_id, s.kind) for s in report.skipped] == [(bad.id, None)]

    rows = await _results(session_factory)
    assert {call_id for call_id, *_ in rows} == {good.id}
    assert (await _call(session_factory, bad.id)).status == CallStatus.SUCCESS


async def test_custom_kind_needs_no_schema_change(session_factory, make_calls):
    """New eval kinds are stored as plain tags."""
    (call,) = await make_calls({"prompt": "ok"})
    detectors = [NullScoreDetector()]
    await EvaluationOrchestrator(session_factory, detectors=detectors).evaluate([call])

    assert await _results(session_factory) == [(call.id, "CUSTOM", True, 1.0, "custom")]


async def test_evaluate_recent_limits_batch(session_factory, make_calls):
    """evaluate_recent picks the N newest calls."""
    await make_calls(*({"prompt": f"p{i}"} for i in range(5)))
    report = await EvaluationOrchestrator(session_factory, concurrency=1).evaluate_recent(3)

    assert report.evaluated == 3
    async with session_factory() as db:
        evaluated_calls = await db.scalar(select(func.count(func.distinct(EvalResult.call_id))))
    assert evaluated_calls == 3


class RefusingStore:
    dimensions = 3

    async def nearest(self, vector, k):
        raise ConnectionRefusedError(111, "Connect call failed")


def refusing_session_factory():
    raise ConnectionRefusedError(111, "Connect call failed")


async def test_unexpected_grounding_error_isolated(session_factory, make_calls):
    """A store raising a plain OSError skips GROUNDING for each call; the batch completes."""
    calls = await make_calls({"response": "fine"}, {"response": "also fine"})
    grounding = GroundednessDetector(StaticEmbedder(), RefusingStore())
    report = await EvaluationOrchestrator(session_factory, grounding=grounding, concurrency=1).evaluate(calls)

    assert report.evaluated == 2
    assert {(s.call_id, s.kind) for s in report.skipped} == {(c.id, EvalKind.GROUNDING) for c in calls}
    assert all(s.reason.startswith("grounding error") for s in report.skipped)
    assert len(await _results(session_factory)) == 2 * len(SYNC_KINDS)


async def test_unexpected_store_error_skips_call(make_calls):
    """A connection error while storing is reported per call instead of raised."""
    calls = await make_calls({"prompt": "a"}, {"prompt": "b"})
    report = await EvaluationOrchestrator(refusing_session_factory, concurrency=2).evaluate(calls)

    assert report.evaluated == 0
    assert sorted((s.call_id, s.kind) for s in report.skipped) == sorted((c.id, None) for c in calls)
    assert all(s.reason.startswith("store error") for s in report.skipped)


async def test_overlapping_runs_upsert_same_rows(session_factory, make_calls):
    """Concurrent runs over the same call converge on one row per kind."""
    (call,) = await make_calls({"prompt": "hello", "response": "I hate this"})
    orchestrator = EvaluationOrchestrator(session_factory, concurrency=4)

    reports = await asyncio.gather(orchestrator.evaluate([call, call]), orchestrator.evaluate([call]))

    assert all(r.skipped == [] for r in reports)
    assert sum(r.evaluated for r in reports) == 3
    assert sum(r.flagged for r in reports) == 1
    rows = await _results(session_factory)
    assert sorted(kind for _, kind, *_ in rows) == sorted(SYNC_KINDS)
    assert (await _call(session_factory, call.id)).status == CallStatus.FLAGGED
