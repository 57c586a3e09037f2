"""Admin endpoints - bulk reset."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from llmobs.auth.middleware import AdminDep
from llmobs.database import get_db
from llmobs.storage.repositories import reset_all

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/reset")
async def reset(
    _admin: AdminDep,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Delete every evaluation result and logged call."""
    evals_deleted, calls_deleted = await reset_all(db)
    logger.warning("Admin reset removed %d eval results and %d calls", evals_deleted, calls_deleted)
    return {"ok": True, "eval_results_deleted": evals_deleted, "calls_deleted": calls_deleted}
