"""
Metadata and embedding enrichment for garments and try-on sessions.

Each entity kind has its own queue carrying two job kinds: analyze-one
(``{"entityId", "ownerId"}``) and sync-unprocessed (``{}``), which re-enqueues
analyze-one for every entity still missing metadata.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from prendas.config import logger
from prendas.core.jobs import ANALYZE_GARMENT, ANALYZE_SESSION, analyze_payload
from prendas.dependencies import Services


def _log(level: int, message: str, **context: Any) -> None:
    logger.log(level, "%s | context=%s", message, context)


async def extract_and_embed(
    image: bytes, services: Services
) -> Tuple[Dict[str, Any], List[float]]:
    """Extract taxonomy metadata from an image and embed its English description."""
    metadata = await services.metadata.extract(image)
    description = metadata["ai_description"]["en"]
    embedding = await services.metadata.embed(description)
    return metadata, embedding


async def analyze_garment(payload: Dict[str, Any], services: Services) -> bool:
    """
    Enrich one garment. Returns True when metadata was stored.

    Missing and soft-deleted garments are skipped. Failures propagate so the
    queue retry policy applies.
    """
    garment_id = str(payload["entityId"])
    owner_id = str(payload["ownerId"])

    garment = await services.garments.find_by_id(garment_id, owner_id, include_deleted=True)
    if garment is None:
        _log(logging.ERROR, "garment_not_found", garment_id=garment_id)
        return False

    if garment.is_deleted:
        _log(logging.INFO, "garment_deleted_skipped", garment_id=garment_id)
        return False

    image = await services.storage.get(services.storage.url_to_key(garment.original_url))

    try:
        metadata, embedding = await extract_and_embed(image, services)
        await services.garments.update_enrichment(garment_id, metadata, embedding)
    except Exception as exc:
        _log(logging.ERROR, "garment_analysis_failed", garment_id=garment_id, error=str(exc))
        raise

    _log(logging.INFO, "garment_analyzed", garment_id=garment_id)
    return True


async def analyze_session(payload: Dict[str, Any], services: Services) -> bool:
    """Enrich one try-on session from its result image. Returns True when metadata was stored."""
    session_id = str(payload["entityId"])
    owner_id = str(payload["ownerId"])

    session = await services.sessions.find_by_id(session_id, owner_id, include_deleted=True)
    if session is None:
        _log(logging.ERROR, "session_not_found", session_id=session_id)
        return False

    if session.is_deleted or not session.result_url:
        _log(
            logging.INFO,
            "session_skipped",
            session_id=session_id,
            deleted=session.is_deleted,
            has_result=bool(session.result_url),
        )
        return False

    image = await services.storage.get(services.storage.url_to_key(session.result_url))

    try:
        _log(logging.INFO, "session_analysis_started", session_id=session_id)
        metadata, embedding = await extract_and_embed(image, services)
        await services.sessions.update_enrichment(session_id, metadata, embedding)
    except Exception as exc:
        _log(logging.ERROR, "session_analysis_failed", session_id=session_id, error=str(exc))
        raise

    _log(logging.INFO, "session_analyzed", session_id=session_id)
    return True


async def sync_unprocessed_garments(services: Services) -> int:
    """Enqueue one analyze-garment job per non-deleted garment without metadata."""
    unprocessed = await services.garments.find_unprocessed()
    for garment in unprocessed:
        await services.garment_queue.enqueue(
            ANALYZE_GARMENT, analyze_payload(garment.id, garment.owner_id)
        )

    if unprocessed:
        logger.info(f"Sync job found {len(unprocessed)} unprocessed garments")
    return len(unprocessed)


async def sync_unprocessed_sessions(services: Services) -> int:
    """Enqueue one analyze-session job per completed, non-deleted session without metadata."""
    unprocessed = await services.sessions.find_unprocessed()
    for session in unprocessed:
        await services.session_queue.enqueue(
            ANALYZE_SESSION, analyze_payload(session.id, session.owner_id)
        )

    if unprocessed:
        logger.info(f"Sync job found {len(unprocessed)} unprocessed sessions")
    return len(unprocessed)
