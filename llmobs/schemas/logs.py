"""Logged call request/response schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

Status = Literal["SUCCESS", "FAIL", "FLAGGED"]


class LogCreate(BaseModel):
    """POST /v1/logs request."""

    user_id: str | None = None
    provider: str = "local"
    model: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    response: str = ""
    latency_ms: int = Field(ge=0)
    prompt_tokens: int = Field(ge=0)
    response_tokens: int = Field(ge=0)
    cost_usd: float | None = Field(default=None, ge=0)
    status: Status = "SUCCESS"
    route: str | None = None


class CallOut(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    created_at: datetime
    user_id: str | None
    provider: str
    model: str
    prompt: str
    response: str
    latency_ms: int
    prompt_tokens: int
    response_tokens: int
    cost_usd: float
    status: Status
    hallucinated: bool
    toxic: bool


class LogListResponse(BaseModel):
    logs: list[CallOut] = Field(default_factory=list)
