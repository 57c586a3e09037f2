"""Analytics and summary response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class ModelRollup(BaseModel):
    """GET /v1/analytics/models row."""

    model: str
    calls: int
    avg_latency_ms: int
    avg_cost_usd: float
    total_cost_usd: float
    error_rate: float


class UserRollup(BaseModel):
    """GET /v1/analytics/users row. Anonymous calls roll up under "anon"."""

    user: str
    calls: int
    avg_latency_ms: int
    total_cost_usd: float
    error_rate: float


class DailyRollup(BaseModel):
    """GET /v1/analytics/daily row."""

    date: str
    calls: int
    avg_latency_ms: int
    cost_usd: float
    errors: int
    error_rate: float


class DailyRollupResponse(BaseModel):
    start: datetime
    end: datetime
    data: list[DailyRollup] = Field(default_factory=list)


class StatusHistogram(BaseModel):
    SUCCESS: int = 0
    FAIL: int = 0
    FLAGGED: int = 0


class MetricsSummary(BaseModel):
    """Overall totals and rates."""

    total: int
    avg_latency_ms: int
    avg_cost_usd: float
    total_cost_usd: float
    error_rate: float
    hallucination_rate: float
    toxicity_rate: float
    statuses: StatusHistogram


class ReportSummary(BaseModel):
    """Compliance report headline figures."""

    total_calls: int
    estimated_cost_usd: float
    avg_latency_ms: int
    hallucination_rate: float
    failures: int
    eu_ai_act_risk: str = "Minimal risk (demo)"


class ActivityItem(BaseModel):
    status: str
    latency_ms: int
    cost_usd: float
    timestamp: datetime


class RealtimeSnapshot(BaseModel):
    """Payload shared by the polling endpoint and the SSE stream."""

    total_calls: int
    recent_calls: int
    avg_latency_ms: int
    error_count: int
    recent_cost_usd: float
    last_update: datetime
    recent_activity: list[ActivityItem] = Field(default_factory=list)


class EvalKindSummary(BaseModel):
    total: int
    passed: int
    failed: int
    pass_rate: float
    avg_score: float


class DailyTrend(BaseModel):
    date: str
    total: int
    passed: int
    pass_rate: float


class RiskyCall(BaseModel):
    call_id: str
    timestamp: datetime
    failed_evals: list[str]
    risk_score: int


class EvaluationSummary(BaseModel):
    """GET /v1/evals/summary response."""

    total_evaluations: int
    overall_pass_rate: float
    by_kind: dict[str, EvalKindSummary] = Field(default_factory=dict)
    recent_trends: list[DailyTrend] = Field(default_factory=list)
    risky_calls: list[RiskyCall] = Field(default_factory=list)
