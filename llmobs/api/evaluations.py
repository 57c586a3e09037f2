"""Evaluation endpoints."""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from llmobs.api.params import FromDate, ToDate, window_from_dates
from llmobs.config import settings
from llmobs.database import get_db, get_session_factory
from llmobs.engine.orchestrator import build_orchestrator
from llmobs.errors import ConfigurationError
from llmobs.schemas.analytics import EvaluationSummary
from llmobs.schemas.evaluation import (
    CallEvaluationsResponse,
    EvalResultOut,
    EvaluationRunResponse,
    SkippedOut,
)
from llmobs.schemas.logs import CallOut
from llmobs.storage.analytics import evaluation_summary
from llmobs.storage.repositories import get_call, list_eval_results_for_call

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/evals/run", response_model=EvaluationRunResponse)
async def run_evaluations(
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
    limit: Annotated[int | None, Query(ge=1, le=5000)] = None,
):
    """
    Evaluate the N most recent calls.
    Reports partial success: calls or (call, kind) pairs that could not be
    evaluated are listed under ``skipped``.
    """
    try:
        orchestrator = build_orchestrator(session_factory)
    except ConfigurationError as e:
        logger.error("Evaluation run refused: %s", e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    try:
        report = await orchestrator.evaluate_recent(limit or settings.eval_batch_size)
    finally:
        await orchestrator.aclose()

    return EvaluationRunResponse(
        ok=True,
        evaluated=report.evaluated,
        flagged=report.flagged,
        skipped=[SkippedOut(call_id=s.call_id, kind=s.kind, reason=s.reason) for s in report.skipped],
    )


@router.get("/evals/summary", response_model=EvaluationSummary)
async def get_evaluation_summary(
    db: Annotated[AsyncSession, Depends(get_db)],
    days: Annotated[int, Query(ge=1, le=365)] = 30,
    top: Annotated[int, Query(ge=1, le=100)] = 10,
    start: FromDate = None,
    end: ToDate = None,
):
    """Pass rates by kind, 7-day trend and top risky calls."""
    return await evaluation_summary(
        db,
        datetime.now(timezone.utc),
        days=days,
        top=top,
        window=window_from_dates(start, end),
    )


@router.get("/evals/{call_id}", response_model=CallEvaluationsResponse)
async def get_call_evaluations(
    call_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Evaluation results for one call."""
    results = await list_eval_results_for_call(db, call_id)
    if not results:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No evaluations found for this call",
        )
    call = await get_call(db, call_id)
    return CallEvaluationsResponse(
        call_id=call_id,
        call=CallOut.model_validate(call) if call else None,
        evaluations=[EvalResultOut.model_validate(r) for r in results],
    )
