"""Runs every detector over a batch of calls and applies the status policy."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from llmobs.config import settings
from llmobs.engine.detectors import CheckResult, default_detectors
from llmobs.engine.embeddings import client_from_settings
from llmobs.engine.grounding import GroundednessDetector
from llmobs.engine.rules import DEFAULT_RULES, RuleSet
from llmobs.errors import (
    ConfigurationError,
    EmbeddingDimensionError,
    EmbeddingServiceError,
    PersistenceError,
)
from llmobs.models import EvalKind
from llmobs.storage.knowledge import PgVectorKnowledgeStore
from llmobs.storage.repositories import (
    flag_call_if_success,
    list_recent_calls,
    set_safety_flags,
    upsert_eval_result,
)

logger = logging.getLogger(__name__)


class CallLike(Protocol):
    id: str
    prompt: str
    response: str


@dataclass(frozen=True)
class SkippedItem:
    """A (call, kind) pair that could not be evaluated. kind is None when the whole call was lost."""

    call_id: str
    kind: str | None
    reason: str


@dataclass
class EvaluationReport:
    evaluated: int = 0
    flagged: int = 0
    skipped: list[SkippedItem] = field(default_factory=list)


@dataclass
class _CallOutcome:
    call_id: str
    results: list[CheckResult] = field(default_factory=list)
    skipped: list[SkippedItem] = field(default_factory=list)
    persisted: bool = False
    flagged: bool = False


class EvaluationOrchestrator:
    """
    Evaluates calls independently, one session per call.

    Within a call every result is upserted before the status and flags
    are touched, and all of it commits together. Detector failures are
    isolated to their (call, kind) pair; persistence failures to their call.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        detectors: Sequence | None = None,
        grounding: GroundednessDetector | None = None,
        concurrency: int = 4,
    ) -> None:
        self._session_factory = session_factory
        self._detectors = list(detectors) if detectors is not None else default_detectors()
        self._grounding = grounding
        self._semaphore = asyncio.Semaphore(max(1, concurrency))

    async def evaluate(self, calls: Sequence[CallLike]) -> EvaluationReport:
        outcomes = await asyncio.gather(*(self._evaluate_guarded(c) for c in calls))

        report = EvaluationReport()
        for outcome in outcomes:
            report.skipped.extend(outcome.skipped)
            if outcome.persisted:
                report.evaluated += 1
            if outcome.flagged:
                report.flagged += 1
        logger.info(
            "Evaluated %d/%d calls (%d newly flagged, %d skipped items)",
            report.evaluated,
            len(calls),
            report.flagged,
            len(report.skipped),
        )
        return report

    async def evaluate_recent(self, limit: int) -> EvaluationReport:
        """Evaluate the N most recent calls."""
        async with self._session_factory() as db:
            calls = await list_recent_calls(db, limit)
        return await self.evaluate(calls)

    async def aclose(self) -> None:
        if self._grounding is not None and hasattr(self._grounding.embedder, "aclose"):
            await self._grounding.embedder.aclose()

    async def _evaluate_guarded(self, call: CallLike) -> _CallOutcome:
        async with self._semaphore:
            outcome = await self._run_detectors(call)
            try:
                await self._persist(outcome)
            except PersistenceError as e:
                logger.warning("Skipping call %s: %s", call.id, e)
                outcome.skipped.append(SkippedItem(call.id, None, str(e)))
            except Exception as e:  # e.g. OSError from the driver on connect
                logger.exception("Skipping call %s, unexpected error while storing results", call.id)
                outcome.skipped.append(SkippedItem(call.id, None, f"store error: {e}"))
            return outcome

    async def _run_detectors(self, call: CallLike) -> _CallOutcome:
        outcome = _CallOutcome(call_id=call.id)
        for detector in self._detectors:
            try:
                outcome.results.append(detector.check(call.prompt, call.response))
            except Exception as e:  # isolated to this (call, kind)
                logger.exception("Detector %s failed on call %s", detector.kind, call.id)
                outcome.skipped.append(SkippedItem(call.id, detector.kind, f"detector error: {e}"))

        if self._grounding is not None:
            try:
                outcome.results.append(await self._grounding.check(call.prompt, call.response))
            except EmbeddingDimensionError as e:
                logger.warning("Grounding skipped for call %s, bad embedding dimension: %s", call.id, e)
                outcome.skipped.append(SkippedItem(call.id, EvalKind.GROUNDING, f"dimension mismatch: {e}"))
            except EmbeddingServiceError as e:
                logger.warning("Grounding skipped for call %s, embedding service unavailable: %s", call.id, e)
                outcome.skipped.append(SkippedItem(call.id, EvalKind.GROUNDING, f"embedding unavailable: {e}"))
            except SQLAlchemyError as e:
                logger.warning("Grounding skipped for call %s, knowledge store error: %s", call.id, e)
                outcome.skipped.append(SkippedItem(call.id, EvalKind.GROUNDING, f"knowledge store error: {e}"))
            except Exception as e:
                logger.exception("Grounding failed on call %s", call.id)
                outcome.skipped.append(SkippedItem(call.id, EvalKind.GROUNDING, f"grounding error: {e}"))
        return outcome

    async def _persist(self, outcome: _CallOutcome) -> None:
        by_kind = {r.kind: r for r in outcome.results}
        hallucination = by_kind.get(EvalKind.HALLUCINATION)
        toxicity = by_kind.get(EvalKind.TOXICITY)
        try:
            async with self._session_factory() as db:
                async with db.begin():
                    for r in outcome.results:
                        await upsert_eval_result(db, outcome.call_id, r.kind, r.passed, r.score, r.details)
                    await set_safety_flags(
                        db,
                        outcome.call_id,
                        hallucinated=None if hallucination is None else not hallucination.passed,
                        toxic=None if toxicity is None else not toxicity.passed,
                    )
                    if any(not r.passed for r in outcome.results):
                        outcome.flagged = await flag_call_if_success(db, outcome.call_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"could not store results: {e}") from e
        outcome.persisted = True


def build_orchestrator(
    session_factory: async_sessionmaker[AsyncSession],
    rules: RuleSet = DEFAULT_RULES,
) -> EvaluationOrchestrator:
    """Wire detectors from settings. Raises ConfigurationError before any call is touched."""
    grounding = None
    if settings.grounding_enabled:
        if not settings.embedding_base_url:
            raise ConfigurationError("grounding is enabled but EMBEDDING_BASE_URL is not set")
        embedder = client_from_settings()
        store = PgVectorKnowledgeStore(session_factory)
        if store.dimensions != embedder.dimensions:
            raise ConfigurationError(
                f"knowledge store holds {store.dimensions}-d vectors but the embedding "
                f"client produces {embedder.dimensions}-d vectors"
            )
        grounding = GroundednessDetector(embedder, store, k=settings.grounding_top_k)
    return EvaluationOrchestrator(
        session_factory,
        detectors=default_detectors(rules),
        grounding=grounding,
        concurrency=settings.eval_concurrency,
    )
