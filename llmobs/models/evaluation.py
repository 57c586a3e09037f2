"""Evaluation result model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from llmobs.database import Base


class EvalKind:
    """Known evaluation kinds. The column is a free tag so new checks need no migration."""

    TOXICITY = "TOXICITY"
    PII = "PII"
    INJECTION = "INJECTION"
    GROUNDING = "GROUNDING"
    HALLUCINATION = "HALLUCINATION"


class EvalResult(Base):
    """At most one live result per (call, kind); re-evaluation overwrites."""

    __tablename__ = "eval_results"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    call_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("model_calls.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)  # 0..1, higher is safer
    details: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (UniqueConstraint("call_id", "kind", name="uq_eval_results_call_kind"),)
