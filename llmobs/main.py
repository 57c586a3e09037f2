"""LLM observability dashboard API."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from llmobs.api.admin import router as admin_router
from llmobs.api.analytics import router as analytics_router
from llmobs.api.evaluations import router as evaluations_router
from llmobs.api.health import router as health_router
from llmobs.api.logs import router as logs_router
from llmobs.api.notifications import router as notifications_router
from llmobs.api.realtime import router as realtime_router
from llmobs.config import settings

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="LLMObs - LLM Call Observability",
    description="Logs model calls, runs safety evaluations and serves dashboard rollups and alerts",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, tags=["Health"])
app.include_router(logs_router, prefix="/v1", tags=["Logs"])
app.include_router(evaluations_router, prefix="/v1", tags=["Evaluations"])
app.include_router(analytics_router, prefix="/v1", tags=["Analytics"])
app.include_router(realtime_router, prefix="/v1", tags=["Realtime"])
app.include_router(notifications_router, prefix="/v1", tags=["Notifications"])
app.include_router(admin_router, prefix="/v1/admin", tags=["Admin"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {"service": "LLMObs", "version": "0.1.0", "docs": "/docs"}
