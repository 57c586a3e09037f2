"""Alert feed schemas."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class AlertEvent(BaseModel):
    """One notification; ``fingerprint`` is the de-duplication key."""

    id: str
    ts: datetime
    severity: Literal["CRITICAL", "HIGH", "MEDIUM", "LOW"]
    category: str
    event: str
    summary: str
    details: dict[str, Any] = Field(default_factory=dict)
    href: str | None = None
    fingerprint: str
