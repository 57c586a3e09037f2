"""Realtime metrics: a polling endpoint and an SSE stream over the same snapshot."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from llmobs.database import get_db, get_session_factory
from llmobs.schemas.analytics import RealtimeSnapshot
from llmobs.storage.analytics import realtime_snapshot

logger = logging.getLogger(__name__)

router = APIRouter()

STREAM_INTERVAL_SECONDS = 10


def _sse(data: str, event: str = "message") -> str:
    return f"event: {event}\ndata: {data}\n\n"


@router.get("/metrics/realtime", response_model=RealtimeSnapshot)
async def poll_realtime(db: Annotated[AsyncSession, Depends(get_db)]):
    """Current snapshot for clients that poll."""
    return await realtime_snapshot(db, datetime.now(timezone.utc))


@router.get("/metrics/stream")
async def stream_realtime(
    request: Request,
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
):
    """Server-Sent Events; a fresh snapshot every few seconds until the client leaves."""

    async def events():
        yield _sse('{"type":"connected","message":"Real-time connection established"}', "connect")
        while not await request.is_disconnected():
            try:
                async with session_factory() as db:
                    snapshot = await realtime_snapshot(db, datetime.now(timezone.utc))
                yield _sse(snapshot.model_dump_json())
            except SQLAlchemyError:
                logger.exception("Failed to fetch realtime metrics")
                yield _sse('{"error":"Failed to fetch metrics"}', "error")
            await asyncio.sleep(STREAM_INTERVAL_SECONDS)

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
