"""Huey tasks for auto-find jobs."""
from __future__ import annotations

import logging

from ..core.config import get_settings
from ..schemas.jobs import AutoFindJob
from .huey_config import huey
from .job_log import get_job_log
from .synthesis import get_synthesizer
from .worker import AutoFindWorker

logger = logging.getLogger(__name__)


@huey.task()
def run_auto_find(payload: dict):
    """Run one attempt of an auto-find job. Payload is an AutoFindJob as JSON."""
    job = AutoFindJob.model_validate(payload)
    logger.debug("Running auto-find job %s (attempt %d)", job.job_id, job.attempts + 1)
    event = get_worker().process(job)
    return event.status.value


def submit_job(job: AutoFindJob) -> None:
    run_auto_find(job.model_dump(mode="json"))


def schedule_retry(job: AutoFindJob, delay: float) -> None:
    run_auto_find.schedule(args=(job.model_dump(mode="json"),), delay=delay)


_WORKER: AutoFindWorker | None = None


def get_worker() -> AutoFindWorker:
    """Return a singleton worker wired to the configured repository and synthesizer."""
    global _WORKER
    if _WORKER is None:
        from ..dependencies import get_recipe_repository

        settings = get_settings()
        _WORKER = AutoFindWorker(
            repository=get_recipe_repository(),
            synthesizer=get_synthesizer(),
            job_log=get_job_log(),
            scheduler=schedule_retry,
            max_attempts=settings.autofind_max_attempts,
            backoff_base_seconds=settings.autofind_backoff_base_seconds,
        )
    return _WORKER


def set_worker(worker: AutoFindWorker | None) -> None:
    """Override the global worker (primarily for tests)."""
    global _WORKER
    _WORKER = worker
