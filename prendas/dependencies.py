"""Wiring of the production collaborators used by the API and the workers."""

from dataclasses import dataclass
from typing import Optional

from prendas.config import logger
from prendas.core.ports import (
    GarmentRepository,
    GenerativeImageService,
    JobQueue,
    MetadataService,
    ObjectStorage,
    TryOnSessionRepository,
)


@dataclass
class Services:
    """Every collaborator the orchestrator and workers need."""

    garments: GarmentRepository
    sessions: TryOnSessionRepository
    storage: ObjectStorage
    generator: GenerativeImageService
    metadata: MetadataService
    tryon_queue: JobQueue
    garment_queue: JobQueue
    session_queue: JobQueue


_services: Optional[Services] = None


def build_services() -> Services:
    from prendas.core.database_ops import (
        SupabaseGarmentRepository,
        SupabaseTryOnSessionRepository,
    )
    from prendas.core.gemini import GeminiImageService, GeminiMetadataService
    from prendas.core.job_queue import CeleryJobQueue
    from prendas.core.storage_ops import SupabaseStorage
    from prendas.core.jobs import (
        GARMENT_ANALYSIS_QUEUE,
        SESSION_ANALYSIS_QUEUE,
        TRYON_QUEUE,
    )
    from prendas.workers.celery_app import celery_app

    return Services(
        garments=SupabaseGarmentRepository(),
        sessions=SupabaseTryOnSessionRepository(),
        storage=SupabaseStorage(),
        generator=GeminiImageService(),
        metadata=GeminiMetadataService(),
        tryon_queue=CeleryJobQueue(TRYON_QUEUE, celery_app),
        garment_queue=CeleryJobQueue(GARMENT_ANALYSIS_QUEUE, celery_app),
        session_queue=CeleryJobQueue(SESSION_ANALYSIS_QUEUE, celery_app),
    )


def get_services() -> Services:
    """Get or create the process-wide Services instance."""
    global _services

    if _services is None:
        _services = build_services()
        logger.info("Services initialized")

    return _services
