"""
Auto-find job queue.

Creates AutoFindJob records, de-duplicates them per (query fingerprint,
identity) for a short debounce window, and hands them to the task queue.
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable, Optional

from ..core.errors import CounterStoreUnavailable, QueueFailure
from ..schemas.jobs import AutoFindJob, JobEvent, JobStatus
from ..schemas.search import NormalizedQuery
from ..services.rate_limiter import Identity
from ..store.counters import CounterStore
from .job_log import JobLog

logger = logging.getLogger(__name__)

Submitter = Callable[[AutoFindJob], None]


class AutoFindQueue:
    def __init__(
        self,
        store: CounterStore,
        job_log: JobLog,
        submitter: Optional[Submitter] = None,
        *,
        debounce_seconds: int = 60,
    ):
        self.store = store
        self.job_log = job_log
        self.debounce_seconds = debounce_seconds
        if submitter is None:
            from .tasks import submit_job

            submitter = submit_job
        self.submitter = submitter

    @staticmethod
    def pending_key(normalized: NormalizedQuery, identity: Identity) -> str:
        return f"autofind:pending:{normalized.fingerprint}:{identity.key}"

    def pending_job(self, normalized: NormalizedQuery, identity: Identity) -> Optional[str]:
        """Job id already submitted for this query and identity, if any. Fails open."""
        try:
            return self.store.get(self.pending_key(normalized, identity))
        except CounterStoreUnavailable as exc:
            logger.warning("Pending-job lookup unavailable, continuing: %s", exc)
            return None

    def enqueue(
        self, normalized: NormalizedQuery, original_text: str, identity: Identity
    ) -> AutoFindJob:
        """
        Submit an auto-find job, or return the one already pending.

        Raises:
            QueueFailure: if the task queue rejects the job.
        """
        job = AutoFindJob(
            job_id=uuid.uuid4().hex,
            normalized_query=normalized.canonical,
            search_terms=normalized.search_terms,
            fingerprint=normalized.fingerprint,
            original_text=original_text,
            identity_key=identity.key,
        )

        key = self.pending_key(normalized, identity)
        claimed = True
        try:
            claimed = self.store.set_if_absent(key, job.job_id, self.debounce_seconds)
        except CounterStoreUnavailable as exc:
            logger.warning("De-dup marker unavailable, enqueueing anyway: %s", exc)

        if not claimed:
            existing = self.pending_job(normalized, identity)
            if existing:
                logger.info("Auto-find for %r already pending as %s", normalized.canonical, existing)
                return job.model_copy(update={"job_id": existing})

        self.job_log.append(JobEvent(job_id=job.job_id, status=JobStatus.QUEUED, event="queued"))
        try:
            self.submitter(job)
        except Exception as exc:
            self.job_log.append(
                JobEvent(
                    job_id=job.job_id,
                    status=JobStatus.FAILED,
                    event="enqueue_failed",
                    error=str(exc),
                )
            )
            try:
                self.store.delete(key)
            except CounterStoreUnavailable:
                logger.warning("Could not clear de-dup marker %s", key)
            raise QueueFailure(f"Could not submit auto-find job {job.job_id}: {exc}") from exc

        logger.info("Queued auto-find job %s for %r (%s)", job.job_id, normalized.canonical, identity.key)
        return job
