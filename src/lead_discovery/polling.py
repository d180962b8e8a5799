"""Bounded polling of prospect list jobs."""

import time
from dataclasses import dataclass, field
from typing import Callable

from .logging_utils import get_logger
from .models import JobStatus, ProspectJob

COMPLETE_STATUSES = frozenset({"complete", "completed", "finished", "done", "success"})
FAILED_STATUSES = frozenset({"failed", "error", "canceled", "cancelled"})

logger = get_logger(__name__)


def classify_list_status(raw_status: str) -> JobStatus:
    """Map a provider status string onto COMPLETE, FAILED or POLLING."""
    status = (raw_status or "").strip().lower()
    if status in COMPLETE_STATUSES:
        return JobStatus.COMPLETE
    if status in FAILED_STATUSES:
        return JobStatus.FAILED
    return JobStatus.POLLING


@dataclass
class PollingPolicy:
    """Fixed-budget polling policy.

    Attributes:
        max_attempts: Number of status checks before giving up.
        interval_seconds: Delay between consecutive checks.
        sleep: Sleep function; tests inject a no-op.
    """

    max_attempts: int = 18
    interval_seconds: float = 1.5
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    @staticmethod
    def is_terminal(job: ProspectJob) -> bool:
        return job.is_terminal

    def run(self, job: ProspectJob, poll: Callable[[ProspectJob], ProspectJob]) -> ProspectJob:
        """Call ``poll`` until the job is terminal or the budget runs out.

        A job still in progress after ``max_attempts`` checks is marked
        TIMEOUT. Exceptions raised by ``poll`` propagate unchanged.
        """
        for attempt in range(1, self.max_attempts + 1):
            job = poll(job)
            if self.is_terminal(job):
                logger.info(
                    "Prospect list reached terminal state",
                    extra={"list_id": job.id, "status": job.status.value, "attempts": attempt},
                )
                return job
            if attempt < self.max_attempts:
                self.sleep(self.interval_seconds)

        job.transition(JobStatus.TIMEOUT)
        logger.info(
            "Prospect list still building after polling budget",
            extra={
                "list_id": job.id,
                "provider_status": job.provider_status,
                "attempts": self.max_attempts,
            },
        )
        return job
