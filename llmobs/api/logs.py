"""Logged call endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from llmobs.api.params import FromDate, ToDate, window_from_dates
from llmobs.database import get_db
from llmobs.schemas.logs import CallOut, LogCreate, LogListResponse, Status
from llmobs.storage.repositories import create_call, get_call, list_calls
from llmobs.utils.cost import estimate_cost_usd

router = APIRouter()


@router.post("/logs", status_code=status.HTTP_201_CREATED)
async def log_call(
    body: LogCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Record a model call. Cost is estimated from token counts when omitted."""
    data = body.model_dump()
    if data["cost_usd"] is None:
        data["cost_usd"] = estimate_cost_usd(body.prompt_tokens, body.response_tokens)
    call = await create_call(db, **data)
    return {"id": call.id}


@router.get("/logs", response_model=LogListResponse)
async def get_logs(
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: Annotated[Status | None, Query(alias="status")] = None,
    model: str | None = None,
    user_id: str | None = None,
    start: FromDate = None,
    end: ToDate = None,
    limit: Annotated[int, Query(ge=1, le=1000)] = 200,
):
    """Recent calls, newest first."""
    calls = await list_calls(
        db,
        status=status_filter,
        model=model,
        user_id=user_id,
        window=window_from_dates(start, end),
        limit=limit,
    )
    return LogListResponse(logs=[CallOut.model_validate(c) for c in calls])


@router.get("/logs/{call_id}", response_model=CallOut)
async def get_log(
    call_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get one call by ID."""
    call = await get_call(db, call_id)
    if not call:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Call not found",
        )
    return CallOut.model_validate(call)
