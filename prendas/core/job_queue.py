"""
Celery-backed job queue.
Jobs are sent by name to a Redis-backed Celery queue; recurring jobs live in
the app's beat schedule, keyed so that re-registration replaces instead of
duplicating.
"""

import asyncio
from typing import Any, Dict, List

from celery import Celery
from celery.schedules import crontab

from prendas.config import logger
from prendas.core.ports import JobQueue, RecurringJob


def parse_cron(pattern: str) -> crontab:
    """Turn a five-field cron expression into a Celery crontab schedule."""
    fields = pattern.split()
    if len(fields) != 5:
        raise ValueError(f"Expected a five-field cron pattern, got: {pattern!r}")

    minute, hour, day_of_month, month_of_year, day_of_week = fields
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


def recurring_key(queue_name: str, job_kind: str, pattern: str) -> str:
    return f"{queue_name}:{job_kind}:{pattern}"


class CeleryJobQueue(JobQueue):
    """One named Celery queue."""

    def __init__(self, name: str, app: Celery):
        self.name = name
        self.app = app

    async def enqueue(self, job_kind: str, payload: Dict[str, Any]) -> str:
        # The payload travels as one positional dict argument.
        result = await asyncio.to_thread(
            self.app.send_task, job_kind, args=[dict(payload)], queue=self.name
        )
        logger.debug(f"Enqueued {job_kind} on {self.name}: {payload} (task id {result.id})")
        return result.id

    async def count_waiting(self) -> int:
        """Number of jobs sitting in the broker list that no worker has reserved yet."""
        return await asyncio.to_thread(self._broker_length)

    def _broker_length(self) -> int:
        with self.app.connection_for_read() as connection:
            waiting = connection.default_channel.client.llen(self.name)
        return int(waiting)

    async def list_recurring(self) -> List[RecurringJob]:
        jobs = []
        for key, entry in self.app.conf.beat_schedule.items():
            if entry.get("options", {}).get("queue") != self.name:
                continue
            pattern = key.split(":", 2)[-1] if key.count(":") >= 2 else ""
            jobs.append(RecurringJob(key=key, name=entry["task"], pattern=pattern))
        return jobs

    async def remove_recurring(self, key: str) -> None:
        self.app.conf.beat_schedule.pop(key, None)
        logger.debug(f"Removed recurring job {key} from {self.name}")

    async def schedule_recurring(self, job_kind: str, pattern: str) -> RecurringJob:
        key = recurring_key(self.name, job_kind, pattern)
        self.app.conf.beat_schedule[key] = {
            "task": job_kind,
            "schedule": parse_cron(pattern),
            "args": [{}],
            "options": {"queue": self.name},
        }
        logger.info(f"Scheduled recurring {job_kind} on {self.name} ({pattern})")
        return RecurringJob(key=key, name=job_kind, pattern=pattern)


__all__ = ["CeleryJobQueue", "parse_cron", "recurring_key"]
