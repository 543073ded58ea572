"""Celery tasks: each job payload is handed to its async handler."""

from __future__ import annotations

import asyncio
from typing import Any, Dict

from prendas.config import JOB_MAX_RETRIES, logger
from prendas.core.errors import NotFoundError
from prendas.core.jobs import (
    ANALYZE_GARMENT,
    ANALYZE_SESSION,
    PROCESS_SESSION,
    SYNC_GARMENTS,
    SYNC_SESSIONS,
)
from prendas.dependencies import get_services
from prendas.services import enrichment_service
from prendas.services.tryon_service import TryOnJobContext, process_tryon_job
from prendas.workers.celery_app import celery_app

RETRY_OPTIONS = {
    "autoretry_for": (Exception,),
    "dont_autoretry_for": (NotFoundError,),
    "max_retries": JOB_MAX_RETRIES,
    "retry_backoff": True,
    "retry_backoff_max": 600,
    "retry_jitter": True,
}


@celery_app.task(name=PROCESS_SESSION, **RETRY_OPTIONS)
def process_session_task(payload: Dict[str, Any]) -> Dict[str, Any]:
    context = TryOnJobContext.from_payload(payload)
    result = asyncio.run(process_tryon_job(context, get_services()))
    return result.to_dict()


@celery_app.task(name=ANALYZE_GARMENT, **RETRY_OPTIONS)
def analyze_garment_task(payload: Dict[str, Any]) -> bool:
    return asyncio.run(enrichment_service.analyze_garment(payload, get_services()))


@celery_app.task(name=ANALYZE_SESSION, **RETRY_OPTIONS)
def analyze_session_task(payload: Dict[str, Any]) -> bool:
    return asyncio.run(enrichment_service.analyze_session(payload, get_services()))


@celery_app.task(name=SYNC_GARMENTS)
def sync_garments_task(payload: Dict[str, Any] | None = None) -> int:
    enqueued = asyncio.run(enrichment_service.sync_unprocessed_garments(get_services()))
    logger.debug(f"{SYNC_GARMENTS} enqueued {enqueued} job(s)")
    return enqueued


@celery_app.task(name=SYNC_SESSIONS)
def sync_sessions_task(payload: Dict[str, Any] | None = None) -> int:
    enqueued = asyncio.run(enrichment_service.sync_unprocessed_sessions(get_services()))
    logger.debug(f"{SYNC_SESSIONS} enqueued {enqueued} job(s)")
    return enqueued
