"""Celery application shared by the API (producer) and the worker processes."""

from __future__ import annotations

import asyncio

from celery import Celery
from celery.signals import beat_init
from kombu import Queue

from prendas.config import REDIS_URL, TRYON_WORKER_CONCURRENCY, logger
from prendas.core.jobs import (
    ANALYZE_GARMENT,
    ANALYZE_SESSION,
    GARMENT_ANALYSIS_QUEUE,
    PROCESS_SESSION,
    SESSION_ANALYSIS_QUEUE,
    SYNC_GARMENTS,
    SYNC_SESSIONS,
    TRYON_QUEUE,
)

celery_app = Celery(
    "prendas",
    broker=REDIS_URL,
    backend=REDIS_URL,
    include=["prendas.workers.tasks"],
)

celery_app.conf.update(
    task_queues=(
        Queue(TRYON_QUEUE),
        Queue(GARMENT_ANALYSIS_QUEUE),
        Queue(SESSION_ANALYSIS_QUEUE),
    ),
    task_default_queue=TRYON_QUEUE,
    task_routes={
        PROCESS_SESSION: {"queue": TRYON_QUEUE},
        ANALYZE_GARMENT: {"queue": GARMENT_ANALYSIS_QUEUE},
        SYNC_GARMENTS: {"queue": GARMENT_ANALYSIS_QUEUE},
        ANALYZE_SESSION: {"queue": SESSION_ANALYSIS_QUEUE},
        SYNC_SESSIONS: {"queue": SESSION_ANALYSIS_QUEUE},
    },
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    worker_concurrency=TRYON_WORKER_CONCURRENCY,
    beat_schedule={},
    timezone="UTC",
)


SYNC_JOB_KINDS = (SYNC_GARMENTS, SYNC_SESSIONS)


@beat_init.connect
def install_sync_schedules(sender=None, **kwargs) -> None:
    """
    Register the recurring sync jobs when the beat process starts.

    Beat has already built its scheduler from conf.beat_schedule when this
    signal fires, so the registrations are copied into the live scheduler too.
    """

    from prendas.config import SYNC_CRON
    from prendas.core.job_queue import CeleryJobQueue
    from prendas.services.reconciliation import install_sync_schedule

    app = getattr(sender, "app", None) or celery_app

    async def _install() -> None:
        await install_sync_schedule(
            CeleryJobQueue(GARMENT_ANALYSIS_QUEUE, app), SYNC_GARMENTS, SYNC_CRON
        )
        await install_sync_schedule(
            CeleryJobQueue(SESSION_ANALYSIS_QUEUE, app), SYNC_SESSIONS, SYNC_CRON
        )

    asyncio.run(_install())

    installed = {
        key: entry
        for key, entry in app.conf.beat_schedule.items()
        if entry.get("task") in SYNC_JOB_KINDS
    }
    if sender is not None:
        scheduler = sender.scheduler
        stale = [
            key
            for key, entry in scheduler.schedule.items()
            if entry.task in SYNC_JOB_KINDS and key not in installed
        ]
        for key in stale:
            scheduler.schedule.pop(key, None)
        scheduler.update_from_dict(installed)
        scheduler.sync()

    logger.info(f"Beat schedule installed: {sorted(installed)}")
