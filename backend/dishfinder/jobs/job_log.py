"""
Auto-find job log.

Append-only JSONL of JobEvent rows, independent of the recipe store. The
current state of a job is folded from its rows on read.
"""

from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock
from typing import List, Optional

from pydantic import ValidationError

from ..core.config import get_settings
from ..schemas.jobs import JobEvent, JobState

logger = logging.getLogger(__name__)


class JobLog:
    """Append-only JSONL log of job lifecycle events."""

    def __init__(self, log_path: Path | str | None = None):
        self.log_path = Path(log_path or get_settings().job_log_path)
        self._lock = Lock()

    def append(self, event: JobEvent) -> None:
        """Persist one event as a JSON line."""
        serialized = event.model_dump_json()
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock:
                with self.log_path.open("a", encoding="utf-8") as log_file:
                    log_file.write(serialized + "\n")
        except OSError as exc:
            logger.error("Failed to persist job event %s/%s: %s", event.job_id, event.event, exc)
            return
        logger.info(
            "job %s %s (status=%s attempts=%d)",
            event.job_id,
            event.event or event.status.value,
            event.status.value,
            event.attempts,
        )

    def _read(self) -> List[JobEvent]:
        if not self.log_path.exists():
            return []
        events = []
        with self._lock:
            with self.log_path.open("r", encoding="utf-8") as log_file:
                lines = log_file.readlines()
        for line_no, line in enumerate(lines, 1):
            line = line.strip()
            if not line:
                continue
            try:
                events.append(JobEvent.model_validate_json(line))
            except ValidationError as exc:
                logger.warning("Skipping malformed job log line %d: %s", line_no, exc)
        return events

    def history(self, job_id: str) -> List[JobEvent]:
        return [e for e in self._read() if e.job_id == job_id]

    def state(self, job_id: str) -> Optional[JobState]:
        events = self.history(job_id)
        return JobState.from_events(events) if events else None


_JOB_LOG: JobLog | None = None


def get_job_log() -> JobLog:
    """Return a singleton JobLog instance."""
    global _JOB_LOG
    if _JOB_LOG is None:
        _JOB_LOG = JobLog()
    return _JOB_LOG


def set_job_log(job_log: JobLog | None) -> None:
    """Override the global job log (primarily for tests)."""
    global _JOB_LOG
    _JOB_LOG = job_log
