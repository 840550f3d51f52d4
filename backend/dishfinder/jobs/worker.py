"""
Auto-find worker.

Processes one attempt of an AutoFindJob: synthesize drafts, validate them,
persist each with insert-if-absent, and record every transition in the job
log. Transient failures are rescheduled with exponential backoff until the
attempt budget is spent.
"""

from __future__ import annotations

import logging
from typing import Callable, List

from ..core.errors import DraftValidationError, SynthesisFailure
from ..schemas.jobs import AutoFindJob, JobEvent, JobStatus
from ..schemas.recipes import RecipeRecord
from ..search.normalizer import canonicalize_title
from ..store.repository import RecipeRepository
from .job_log import JobLog
from .synthesis import RecipeSynthesizer

logger = logging.getLogger(__name__)

RetryScheduler = Callable[[AutoFindJob, float], None]


def backoff_delay(attempt: int, base_seconds: float = 2.0) -> float:
    """Delay before the attempt after ``attempt``: base, 2*base, 4*base, ..."""
    return base_seconds * (2 ** (attempt - 1))


class AutoFindWorker:
    def __init__(
        self,
        repository: RecipeRepository,
        synthesizer: RecipeSynthesizer,
        job_log: JobLog,
        scheduler: RetryScheduler,
        *,
        max_attempts: int = 3,
        backoff_base_seconds: float = 2.0,
    ):
        self.repository = repository
        self.synthesizer = synthesizer
        self.job_log = job_log
        self.scheduler = scheduler
        self.max_attempts = max_attempts
        self.backoff_base_seconds = backoff_base_seconds

    def process(self, job: AutoFindJob) -> JobEvent:
        """Run one attempt and return the last event it logged."""
        attempt = job.attempts + 1
        job = job.model_copy(update={"status": JobStatus.RUNNING, "attempts": attempt})
        self._log(job, "running")

        try:
            records = self._build_records(self.synthesizer.synthesize(job))
            recipe_ids, created = self._persist(records)
        except SynthesisFailure as exc:
            if exc.transient:
                return self._retry_or_fail(job, str(exc))
            return self._log(job, "failed", status=JobStatus.FAILED, error=str(exc))
        except DraftValidationError as exc:
            return self._log(job, "failed", status=JobStatus.FAILED, error=f"Invalid drafts: {exc}")
        except Exception as exc:
            logger.exception("Auto-find job %s attempt %d crashed", job.job_id, attempt)
            return self._retry_or_fail(job, f"{type(exc).__name__}: {exc}")

        return self._log(
            job,
            "succeeded",
            status=JobStatus.SUCCEEDED,
            recipe_ids=recipe_ids,
            detail={"created": created, "existing": len(recipe_ids) - created},
        )

    def _build_records(self, drafts) -> List[RecipeRecord]:
        if not drafts:
            raise SynthesisFailure("Synthesis returned no drafts", transient=False)

        records, problems = [], []
        for draft in drafts:
            errors = draft.validation_errors()
            if errors:
                logger.warning("Rejecting draft %r: %s", draft.title, "; ".join(errors))
                problems.extend(errors)
                continue
            records.append(draft.to_record(canonicalize_title(draft.title)))

        if not records:
            raise DraftValidationError(problems)
        return records

    def _persist(self, records: List[RecipeRecord]) -> tuple[List[int], int]:
        recipe_ids: List[int] = []
        created = 0
        for record in records:
            stored, was_created = self.repository.insert_if_absent(record)
            if stored.id not in recipe_ids:
                recipe_ids.append(stored.id)
            created += int(was_created)
            if not was_created:
                logger.info("Recipe %r (%s) already stored as %s", record.title, record.origin_country, stored.id)
        return recipe_ids, created

    def _retry_or_fail(self, job: AutoFindJob, error: str) -> JobEvent:
        if job.attempts >= self.max_attempts:
            return self._log(
                job,
                "failed",
                status=JobStatus.FAILED,
                error=f"Gave up after {job.attempts} attempts: {error}",
            )

        delay = backoff_delay(job.attempts, self.backoff_base_seconds)
        next_job = job.model_copy(update={"status": JobStatus.QUEUED})
        # Logged first: the scheduler may run the next attempt inline.
        scheduled = self._log(
            next_job,
            "retry_scheduled",
            error=error,
            detail={"delay_seconds": delay},
        )
        try:
            self.scheduler(next_job, delay)
        except Exception as exc:
            logger.error("Could not reschedule job %s: %s", job.job_id, exc)
            return self._log(
                job,
                "failed",
                status=JobStatus.FAILED,
                error=f"{error}; retry could not be scheduled: {exc}",
            )
        return scheduled

    def _log(self, job: AutoFindJob, event: str, *, status: JobStatus | None = None, **fields) -> JobEvent:
        entry = JobEvent(
            job_id=job.job_id,
            status=status or job.status,
            attempts=job.attempts,
            event=event,
            **fields,
        )
        self.job_log.append(entry)
        return entry
