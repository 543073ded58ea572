"""Background try-on processing: normalize, generate, persist, enrich."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from prendas.config import ANCHOR_ASSETS_DIR, logger
from prendas.core.entities import Stance, TryOnSession
from prendas.core.errors import NotFoundError
from prendas.core.image_ops import load_anchor_image, normalize_for_tryon
from prendas.core.prompt_templates import build_tryon_prompt
from prendas.dependencies import Services
from prendas.services.enrichment_service import extract_and_embed

RESULT_MIME_TYPE = "image/png"


def _log(level: int, message: str, **context: Any) -> None:
    """Helper to emit structured logs with contextual metadata."""
    logger.log(level, "%s | context=%s", message, context)


@dataclass(slots=True)
class TryOnJobContext:
    """Payload of one processing job."""

    session_id: str
    owner_id: str
    stance: Stance

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TryOnJobContext":
        return cls(
            session_id=str(payload["sessionId"]),
            owner_id=str(payload["ownerId"]),
            stance=Stance.from_selector(payload.get("stance")),
        )


@dataclass(slots=True)
class TryOnJobResult:
    """Outcome of a successful job; enrichment_error carries a non-fatal diagnostic."""

    session_id: str
    result_url: str
    degraded: bool = False
    enrichment_error: Optional[str] = None
    skipped: bool = False
    processing_time_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "result_url": self.result_url,
            "degraded": self.degraded,
            "enrichment_error": self.enrichment_error,
            "skipped": self.skipped,
            "processing_time_ms": self.processing_time_ms,
        }


async def process_tryon_job(
    context: TryOnJobContext,
    services: Services,
    assets_dir: str | Path = ANCHOR_ASSETS_DIR,
) -> TryOnJobResult:
    """
    Run the try-on pipeline for one session.

    Every stage up to storing the result URL is fatal and re-raises so the
    queue can retry the job; the session then stays pending. Enrichment of the
    stored result is best-effort.

    Raises:
        NotFoundError: If the session does not exist for the owner
        UpstreamServiceError: If storage, Gemini or the database fail
    """
    start_time = time.time()
    _log(logging.INFO, "tryon_job_started", session_id=context.session_id)

    session = await services.sessions.find_by_id(context.session_id, context.owner_id)
    if session is None:
        raise NotFoundError("TryOnSession", context.session_id)

    if session.result_url:
        _log(
            logging.INFO,
            "tryon_job_already_completed",
            session_id=session.id,
            result_url=session.result_url,
        )
        return TryOnJobResult(
            session_id=session.id, result_url=session.result_url, skipped=True
        )

    anchor_image = load_anchor_image(session.stance, assets_dir)
    garment_images = await _prepare_garments(session, services)

    result_image, degraded = await _run_generation(
        context, anchor_image, garment_images, services
    )

    result_key = f"results/{uuid.uuid4()}.png"
    result_url = await services.storage.put(result_key, result_image, RESULT_MIME_TYPE)
    _log(logging.INFO, "result_uploaded", session_id=session.id, result_url=result_url)

    stored = await services.sessions.mark_completed(session.id, context.owner_id, result_url)
    if stored.result_url and stored.result_url != result_url:
        # Another run stored its result first; keep that one and let the
        # session sync enrich it.
        _log(
            logging.WARNING,
            "result_already_stored",
            session_id=session.id,
            stored_url=stored.result_url,
        )
        result_url = stored.result_url
        enrichment_error = "result stored by a concurrent run"
    else:
        enrichment_error = await _enrich_result(session.id, result_image, services)

    result = TryOnJobResult(
        session_id=session.id,
        result_url=result_url,
        degraded=degraded,
        enrichment_error=enrichment_error,
        processing_time_ms=int((time.time() - start_time) * 1000),
    )
    _log(logging.INFO, "tryon_job_completed", **result.to_dict())
    return result


async def _prepare_garments(session: TryOnSession, services: Services) -> List[bytes]:
    normalized = []
    for idx, garment in enumerate(session.garments):
        raw = await services.storage.get(services.storage.url_to_key(garment.original_url))
        normalized.append(normalize_for_tryon(raw))
        _log(
            logging.DEBUG,
            "garment_normalized",
            session_id=session.id,
            garment_id=garment.id,
            position=idx,
        )
    return normalized


async def _run_generation(
    context: TryOnJobContext,
    anchor_image: bytes,
    garment_images: List[bytes],
    services: Services,
) -> tuple[bytes, bool]:
    """Return the generated image, or the anchor image when Gemini produced none."""
    prompt = build_tryon_prompt(len(garment_images))
    generated = await services.generator.compose(anchor_image, garment_images, prompt)

    if generated:
        _log(logging.INFO, "generation_complete", session_id=context.session_id)
        return generated, False

    _log(
        logging.WARNING,
        "generation_returned_no_image",
        session_id=context.session_id,
        fallback="anchor_image",
    )
    return anchor_image, True


async def _enrich_result(
    session_id: str, result_image: bytes, services: Services
) -> Optional[str]:
    try:
        metadata, embedding = await extract_and_embed(result_image, services)
        await services.sessions.update_enrichment(session_id, metadata, embedding)
        _log(logging.INFO, "result_enriched", session_id=session_id)
        return None
    except Exception as exc:
        _log(
            logging.WARNING,
            "result_enrichment_failed",
            session_id=session_id,
            error=str(exc),
        )
        return str(exc)
