"""Recurring sync registration, run once per entity queue at scheduler startup."""

from prendas.config import SYNC_CRON, logger
from prendas.core.ports import JobQueue, RecurringJob


async def install_sync_schedule(
    queue: JobQueue, job_kind: str, pattern: str = SYNC_CRON
) -> RecurringJob:
    """
    Replace any earlier registration of job_kind on the queue with a single
    recurring trigger firing on pattern.

    Args:
        queue: Entity analysis queue the sync job runs on
        job_kind: Sync job name (e.g. 'sync-garments')
        pattern: Five-field cron expression

    Returns:
        RecurringJob: The registration that is now active
    """
    logger.info(f"Initializing {job_kind} repeatable job on {queue.name}...")

    removed = 0
    for job in await queue.list_recurring():
        if job.name == job_kind:
            await queue.remove_recurring(job.key)
            removed += 1

    if removed:
        logger.info(f"Removed {removed} previous {job_kind} registration(s)")

    return await queue.schedule_recurring(job_kind, pattern)
