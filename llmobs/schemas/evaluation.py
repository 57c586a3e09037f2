"""Evaluation request/response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from llmobs.schemas.logs import CallOut


class SkippedOut(BaseModel):
    """A (call, kind) pair left unevaluated; kind is null when the whole call was skipped."""

    call_id: str
    kind: str | None = None
    reason: str


class EvaluationRunResponse(BaseModel):
    """POST /v1/evals/run response."""

    ok: bool
    evaluated: int
    flagged: int
    skipped: list[SkippedOut] = Field(default_factory=list)


class EvalResultOut(BaseModel):
    model_config = {"from_attributes": True}

    kind: str
    passed: bool
    score: float
    details: str
    created_at: datetime
    updated_at: datetime


class CallEvaluationsResponse(BaseModel):
    """GET /v1/evals/{call_id} response."""

    call_id: str
    call: CallOut | None = None
    evaluations: list[EvalResultOut] = Field(default_factory=list)
