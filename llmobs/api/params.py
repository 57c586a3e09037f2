"""Query parameter helpers shared by the read endpoints."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Annotated

from fastapi import Query

from llmobs.storage.repositories import TimeWindow

FromDate = Annotated[date | None, Query(alias="from")]
ToDate = Annotated[date | None, Query(alias="to")]


def _start_of(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def window_from_dates(start: date | None, end: date | None) -> TimeWindow:
    """Inclusive ``from``/``to`` calendar dates to a half-open UTC window."""
    return TimeWindow(
        start=_start_of(start) if start else None,
        end=_start_of(end) + timedelta(days=1) if end else None,
    )
