"""Repository functions for logged calls and evaluation results."""

from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from llmobs.errors import PersistenceError
from llmobs.models import CallStatus, EvalResult, LoggedCall


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end); either bound may be open."""

    start: datetime | None = None
    end: datetime | None = None

    def apply(self, stmt, column):
        if self.start is not None:
            stmt = stmt.where(column >= self.start)
        if self.end is not None:
            stmt = stmt.where(column < self.end)
        return stmt


async def create_call(
    db: AsyncSession,
    model: str,
    prompt: str,
    response: str = "",
    user_id: str | None = None,
    provider: str = "local",
    latency_ms: int = 0,
    prompt_tokens: int = 0,
    response_tokens: int = 0,
    cost_usd: float = 0.0,
    status: str = CallStatus.SUCCESS,
    route: str | None = None,
    created_at: datetime | None = None,
) -> LoggedCall:
    """Record one model invocation."""
    call = LoggedCall(
        id=str(uuid4()),
        created_at=created_at or _now(),
        user_id=user_id,
        provider=provider,
        model=model,
        prompt=prompt,
        response=response,
        latency_ms=latency_ms,
        prompt_tokens=prompt_tokens,
        response_tokens=response_tokens,
        cost_usd=cost_usd,
        status=status,
        hallucinated=False,
        toxic=False,
        route=route,
    )
    db.add(call)
    await db.flush()
    return call


async def get_call(db: AsyncSession, call_id: str) -> LoggedCall | None:
    """Get call by ID."""
    result = await db.execute(select(LoggedCall).where(LoggedCall.id == call_id))
    return result.scalar_one_or_none()


async def list_calls(
    db: AsyncSession,
    status: str | None = None,
    model: str | None = None,
    user_id: str | None = None,
    window: TimeWindow | None = None,
    limit: int = 200,
) -> list[LoggedCall]:
    """Filtered range query, newest first."""
    stmt = select(LoggedCall)
    if status:
        stmt = stmt.where(LoggedCall.status == status)
    if model:
        stmt = stmt.where(LoggedCall.model == model)
    if user_id:
        stmt = stmt.where(LoggedCall.user_id == user_id)
    if window:
        stmt = window.apply(stmt, LoggedCall.created_at)
    stmt = stmt.order_by(LoggedCall.created_at.desc(), LoggedCall.id).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_recent_calls(db: AsyncSession, limit: int) -> list[LoggedCall]:
    """The N most recent calls, the default evaluation batch."""
    return await list_calls(db, limit=limit)


def _insert_for(db: AsyncSession):
    """Dialect-specific INSERT supporting ON CONFLICT."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise PersistenceError(f"upsert not supported for dialect {dialect}")


async def upsert_eval_result(
    db: AsyncSession,
    call_id: str,
    kind: str,
    passed: bool,
    score: float,
    details: str,
) -> None:
    """
    Atomic insert-or-update keyed by (call_id, kind).
    Concurrent writers race to the unique constraint, never to a duplicate row.
    """
    now = _now()
    insert = _insert_for(db)
    stmt = insert(EvalResult).values(
        id=str(uuid4()),
        call_id=call_id,
        kind=kind,
        passed=passed,
        score=score,
        details=details,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["call_id", "kind"],
        set_={
            "passed": stmt.excluded.passed,
            "score": stmt.excluded.score,
            "details": stmt.excluded.details,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    await db.execute(stmt)


async def flag_call_if_success(db: AsyncSession, call_id: str) -> bool:
    """SUCCESS -> FLAGGED as a conditional update; FAIL and FLAGGED are left alone."""
    result = await db.execute(
        update(LoggedCall)
        .where(LoggedCall.id == call_id, LoggedCall.status == CallStatus.SUCCESS)
        .values(status=CallStatus.FLAGGED)
    )
    return result.rowcount > 0


async def set_safety_flags(
    db: AsyncSession, call_id: str, hallucinated: bool | None, toxic: bool | None
) -> None:
    """Sync the denormalized flags; None leaves a flag untouched."""
    values = {}
    if hallucinated is not None:
        values["hallucinated"] = hallucinated
    if toxic is not None:
        values["toxic"] = toxic
    if not values:
        return
    await db.execute(update(LoggedCall).where(LoggedCall.id == call_id).values(**values))


async def list_eval_results_for_call(db: AsyncSession, call_id: str) -> list[EvalResult]:
    """All results for a call, oldest first."""
    result = await db.execute(
        select(EvalResult)
        .where(EvalResult.call_id == call_id)
        .order_by(EvalResult.created_at.asc(), EvalResult.kind)
    )
    return list(result.scalars().all())


async def reset_all(db: AsyncSession) -> tuple[int, int]:
    """Bulk administrative reset. Returns (eval results deleted, calls deleted)."""
    evals = await db.execute(delete(EvalResult))
    calls = await db.execute(delete(LoggedCall))
    return evals.rowcount, calls.rowcount
