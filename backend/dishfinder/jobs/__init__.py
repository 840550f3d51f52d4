"""
Dishfinder Jobs
===============

Auto-find: queue, worker, synthesis providers and the job log.
"""

from .job_log import JobLog, get_job_log, set_job_log
from .queue import AutoFindQueue
from .synthesis import (
    MockRecipeSynthesizer,
    OpenAIRecipeSynthesizer,
    RecipeSynthesizer,
    get_synthesizer,
)
from .worker import AutoFindWorker, backoff_delay

__all__ = [
    "JobLog",
    "get_job_log",
    "set_job_log",
    "AutoFindQueue",
    "MockRecipeSynthesizer",
    "OpenAIRecipeSynthesizer",
    "RecipeSynthesizer",
    "get_synthesizer",
    "AutoFindWorker",
    "backoff_delay",
]
