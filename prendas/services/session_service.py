"""Submission-time use case: persist garments, create the session, enqueue processing."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from prendas.config import MAX_WAITING_JOBS, logger
from prendas.core.admission import ensure_admitted
from prendas.core.entities import Garment, Stance, TryOnSession
from prendas.core.errors import ValidationError
from prendas.core.jobs import (
    ANALYZE_GARMENT,
    PROCESS_SESSION,
    analyze_payload,
    processing_payload,
)
from prendas.dependencies import Services

NO_GARMENTS_MESSAGE = "No garments provided for try-on"


def _log(level: int, message: str, **context: Any) -> None:
    logger.log(level, "%s | context=%s", message, context)


@dataclass
class SessionSubmission:
    """Everything the client sent for one try-on request."""

    owner_id: str
    garment_keys: List[str] = field(default_factory=list)
    category: str = "clothing"
    garment_ids: List[str] = field(default_factory=list)
    stance: Optional[str] = None
    hashes: List[Optional[str]] = field(default_factory=list)


@dataclass
class SubmissionResult:
    session_id: str
    uploaded_garments: List[Garment]
    stance: Stance


async def _persist_uploads(
    submission: SessionSubmission, services: Services
) -> List[Garment]:
    uploaded: List[Garment] = []

    for idx, key in enumerate(submission.garment_keys):
        content_hash = submission.hashes[idx] if idx < len(submission.hashes) else None

        if content_hash:
            existing = await services.garments.find_by_hash(content_hash, submission.owner_id)
            if existing is not None:
                _log(
                    logging.INFO,
                    "garment_reused",
                    garment_id=existing.id,
                    owner_id=submission.owner_id,
                )
                uploaded.append(existing)
                continue

        garment = await services.garments.create(
            Garment(
                original_url=services.storage.public_url(key),
                owner_id=submission.owner_id,
                category=submission.category or "clothing",
                hash=content_hash,
            )
        )
        uploaded.append(garment)
        await _request_garment_analysis(garment, services)

    return uploaded


async def _request_garment_analysis(garment: Garment, services: Services) -> None:
    # A lost analyze job is picked up again by the periodic garment sync.
    try:
        await services.garment_queue.enqueue(
            ANALYZE_GARMENT, analyze_payload(garment.id, garment.owner_id)
        )
    except Exception as exc:
        _log(
            logging.WARNING,
            "garment_analysis_enqueue_failed",
            garment_id=garment.id,
            error=str(exc),
        )


async def _resolve_existing(
    submission: SessionSubmission, services: Services
) -> List[Garment]:
    resolved: List[Garment] = []
    for garment_id in submission.garment_ids:
        garment = await services.garments.find_by_id(garment_id, submission.owner_id)
        if garment is None:
            _log(logging.DEBUG, "garment_id_dropped", garment_id=garment_id)
            continue
        resolved.append(garment)
    return resolved


def _union(*groups: List[Garment]) -> List[Garment]:
    seen = set()
    merged = []
    for group in groups:
        for garment in group:
            if garment.id in seen:
                continue
            seen.add(garment.id)
            merged.append(garment)
    return merged


async def submit_session(
    submission: SessionSubmission,
    services: Services,
    max_waiting: int = MAX_WAITING_JOBS,
) -> SubmissionResult:
    """
    Accept a try-on request and queue it for background processing.

    Args:
        submission: Uploaded keys, existing garment ids, stance and owner
        services: Collaborators to persist and enqueue with
        max_waiting: Admission threshold for the processing queue

    Returns:
        SubmissionResult with the new session id and the uploaded garments

    Raises:
        AdmissionRejected: If the processing queue is saturated (nothing is written)
        ValidationError: If no garment could be persisted or resolved
    """
    await ensure_admitted(services.tryon_queue, max_waiting)

    uploaded = await _persist_uploads(submission, services)
    resolved = await _resolve_existing(submission, services)

    garments = _union(uploaded, resolved)
    if not garments:
        _log(logging.WARNING, "submission_rejected", owner_id=submission.owner_id)
        raise ValidationError(NO_GARMENTS_MESSAGE)

    stance = Stance.from_selector(submission.stance)
    session = await services.sessions.create(
        TryOnSession(
            owner_id=submission.owner_id,
            mannequin_url=stance.anchor_filename,
            garments=garments,
            stance=stance,
        )
    )

    await services.tryon_queue.enqueue(
        PROCESS_SESSION,
        processing_payload(session.id, submission.owner_id, stance.value),
    )

    _log(
        logging.INFO,
        "session_submitted",
        session_id=session.id,
        owner_id=submission.owner_id,
        garment_count=len(garments),
        uploaded_count=len(uploaded),
        stance=stance.value,
    )

    return SubmissionResult(session_id=session.id, uploaded_garments=uploaded, stance=stance)
