"""
Auto-find job schemas.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.SUCCEEDED, JobStatus.FAILED})


class AutoFindJob(BaseModel):
    """A request to synthesize a recipe for a query that matched nothing."""

    job_id: str
    normalized_query: str
    search_terms: str = ""
    fingerprint: str = ""
    original_text: str
    identity_key: str
    status: JobStatus = JobStatus.QUEUED
    attempts: int = 0
    created_at: datetime = Field(default_factory=_utcnow)


class JobEvent(BaseModel):
    """One append-only lifecycle row for a job."""

    job_id: str
    status: JobStatus
    attempts: int = 0
    event: str = ""
    timestamp: datetime = Field(default_factory=_utcnow)
    recipe_ids: List[int] = Field(default_factory=list)
    error: Optional[str] = None
    detail: dict[str, Any] = Field(default_factory=dict)


class JobState(BaseModel):
    """Current state of a job, folded from its events."""

    job_id: str
    status: JobStatus
    attempts: int
    created_at: datetime
    updated_at: datetime
    recipe_ids: List[int] = Field(default_factory=list)
    error: Optional[str] = None
    events: List[JobEvent] = Field(default_factory=list)

    @classmethod
    def from_events(cls, events: List[JobEvent]) -> "JobState":
        if not events:
            raise ValueError("cannot fold an empty event list")
        first, last = events[0], events[-1]
        recipe_ids: list[int] = []
        for event in events:
            for recipe_id in event.recipe_ids:
                if recipe_id not in recipe_ids:
                    recipe_ids.append(recipe_id)
        return cls(
            job_id=first.job_id,
            status=last.status,
            attempts=max(e.attempts for e in events),
            created_at=first.timestamp,
            updated_at=last.timestamp,
            recipe_ids=recipe_ids,
            error=last.error,
            events=list(events),
        )
