"""
Admission control for new try-on submissions.
Rejects work while the processing queue already holds more than
MAX_WAITING_JOBS jobs that no worker has picked up yet.
"""

from dataclasses import dataclass
from typing import Optional

from prendas.config import MAX_WAITING_JOBS, logger
from prendas.core.errors import AdmissionRejected
from prendas.core.ports import JobQueue

CAPACITY_EXCEEDED = "capacity exceeded"


@dataclass(frozen=True)
class AdmissionDecision:
    allowed: bool
    waiting: int
    limit: int
    reason: Optional[str] = None


async def admit(queue: JobQueue, max_waiting: int = MAX_WAITING_JOBS) -> AdmissionDecision:
    """
    Decide whether a new submission may be accepted.

    The queue depth is read without any lock, so concurrent submissions can
    overshoot the limit slightly.

    Args:
        queue: The processing queue whose waiting jobs are counted
        max_waiting: Largest number of waiting jobs that still admits work

    Returns:
        AdmissionDecision describing the outcome
    """
    waiting = await queue.count_waiting()
    allowed = waiting <= max_waiting

    logger.info(
        "Admission check",
        extra={
            "queue": queue.name,
            "waiting": waiting,
            "limit": max_waiting,
            "allowed": allowed,
        },
    )

    if not allowed:
        return AdmissionDecision(
            allowed=False,
            waiting=waiting,
            limit=max_waiting,
            reason=CAPACITY_EXCEEDED,
        )

    return AdmissionDecision(allowed=True, waiting=waiting, limit=max_waiting)


async def ensure_admitted(
    queue: JobQueue, max_waiting: int = MAX_WAITING_JOBS
) -> AdmissionDecision:
    """Run admit() and raise AdmissionRejected when the queue is saturated."""
    decision = await admit(queue, max_waiting)
    if not decision.allowed:
        logger.warning(
            f"Admission rejected: {decision.waiting} jobs waiting (limit {decision.limit})"
        )
        raise AdmissionRejected(
            decision.reason or CAPACITY_EXCEEDED, decision.waiting, decision.limit
        )
    return decision
