"""
Bounded polling of asynchronous jobs unlocked by a paid request.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Optional

from .errors import JobError, JobFailed, JobTimeout

__all__ = [
    "BACKOFF_FACTOR",
    "Job",
    "JobPoller",
    "MAX_POLL_DELAY",
    "backoff_delays",
]

PENDING = "pending"
COMPLETED = "completed"
FAILED = "failed"

DEFAULT_MAX_ATTEMPTS = 60
DEFAULT_INITIAL_DELAY = 5.0
BACKOFF_FACTOR = 1.2
MAX_POLL_DELAY = 30.0


@dataclass(frozen=True)
class Job:
    id: str
    status: str
    result_url: Optional[str] = None
    error: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_complete(self) -> bool:
        return self.status in (COMPLETED, FAILED)

    @classmethod
    def from_response(cls, job_id: str, payload: Any) -> "Job":
        if not isinstance(payload, dict):
            raise JobError(job_id, f"Job status response is not an object: {payload!r}")
        return cls(
            id=str(payload.get("job_id") or job_id),
            status=str(payload.get("status") or PENDING),
            result_url=payload.get("video_url"),
            error=payload.get("error"),
            raw=payload,
        )


def backoff_delays(
    initial_delay: float,
    *,
    factor: float = BACKOFF_FACTOR,
    ceiling: float = MAX_POLL_DELAY,
) -> Iterator[float]:
    """Yield ``initial_delay`` growing by ``factor`` per step, capped at ``ceiling``."""
    delay = min(initial_delay, ceiling)
    while True:
        yield delay
        delay = min(delay * factor, ceiling)


class JobPoller:
    """
    Re-fetches a job until it completes, fails or ``max_attempts`` runs out.

    ``fetch_job`` is expected to raise :class:`JobNotFound` for unknown ids.
    """

    def __init__(
        self,
        fetch_job: Callable[[str], Job],
        *,
        sleep: Callable[[float], None] = time.sleep,
        factor: float = BACKOFF_FACTOR,
        ceiling: float = MAX_POLL_DELAY,
    ) -> None:
        self._fetch_job = fetch_job
        self._sleep = sleep
        self.factor = factor
        self.ceiling = ceiling

    def poll(
        self,
        job_id: str,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
    ) -> Job:
        delays = backoff_delays(initial_delay, factor=self.factor, ceiling=self.ceiling)
        for attempt in range(1, max_attempts + 1):
            job = self._fetch_job(job_id)
            if job.status == COMPLETED:
                logging.info("Job %s completed after %d attempt(s)", job_id, attempt)
                return job
            if job.status == FAILED:
                raise JobFailed(job_id, job.error)

            delay = next(delays)
            logging.info(
                "Job %s is %s (attempt %d/%d); checking again in %.1fs",
                job_id,
                job.status,
                attempt,
                max_attempts,
                delay,
            )
            self._sleep(delay)

        raise JobTimeout(job_id, max_attempts)
