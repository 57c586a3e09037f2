"""Logged model call."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from llmobs.database import Base


class CallStatus:
    """Closed set of call statuses.

    FAIL is only ever written by the logging layer. Evaluations may move a
    call from SUCCESS to FLAGGED and nothing else.
    """

    SUCCESS = "SUCCESS"
    FAIL = "FAIL"
    FLAGGED = "FLAGGED"

    ALL = (SUCCESS, FAIL, FLAGGED)


class LoggedCall(Base):
    """One row per model invocation."""

    __tablename__ = "model_calls"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    provider: Mapped[str] = mapped_column(String(64), nullable=False, default="local")
    model: Mapped[str] = mapped_column(String(255), nullable=False)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    response: Mapped[str] = mapped_column(Text, nullable=False, default="")
    latency_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    prompt_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    response_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cost_usd: Mapped[float] = mapped_column(
        Numeric(14, 8, asdecimal=False), nullable=False, default=0.0
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=CallStatus.SUCCESS
    )  # SUCCESS|FAIL|FLAGGED
    hallucinated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    toxic: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    route: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_model_calls_created_at", "created_at"),
        Index("ix_model_calls_model_created_at", "model", "created_at"),
    )
