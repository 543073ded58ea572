"""FastAPI router for virtual try-on endpoints."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from prendas.config import logger
from prendas.core.entities import TryOnSession
from prendas.core.errors import (
    AdmissionRejected,
    TryOnError,
    UpstreamServiceError,
    ValidationError,
)
from prendas.dependencies import Services
from prendas.services.session_service import SessionSubmission, submit_session

from .dependencies import get_owner_id, provide_services
from .models import GarmentResponse, SessionStatusResponse, TryOnRequest, TryOnResponse

router = APIRouter(prefix="/api/v1", tags=["Virtual Try-On"])


def _session_response(session: TryOnSession) -> SessionStatusResponse:
    return SessionStatusResponse(
        success=True,
        session_id=session.id,
        status=session.status.value,
        stance=session.stance.value,
        result_url=session.result_url,
        garment_ids=[g.id for g in session.garments],
    )


@router.post("/tryon", response_model=TryOnResponse)
async def create_virtual_tryon(
    payload: TryOnRequest,
    owner_id: str = Depends(get_owner_id),
    services: Services = Depends(provide_services),
) -> TryOnResponse:
    """Submit a try-on job and queue background processing."""

    logger.info(
        "Virtual try-on request received",
        extra={
            "owner_id": owner_id,
            "upload_count": len(payload.garment_keys),
            "existing_count": len(payload.garment_ids),
        },
    )

    submission = SessionSubmission(
        owner_id=owner_id,
        garment_keys=payload.garment_keys,
        category=payload.category or "clothing",
        garment_ids=payload.garment_ids,
        stance=payload.person_type,
        hashes=payload.hashes,
    )

    try:
        result = await submit_session(submission, services)

    except AdmissionRejected as exc:
        raise HTTPException(
            status_code=429,
            detail=f"Try-on capacity exceeded, please retry later ({exc.waiting} jobs waiting)",
            headers={"Retry-After": "30"},
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except UpstreamServiceError as exc:
        logger.error("Upstream failure during submission", extra={"error": str(exc)})
        raise HTTPException(status_code=502, detail=f"Failed to submit try-on: {exc}")
    except TryOnError as exc:
        logger.error("Unexpected error in try-on request", exc_info=True)
        raise HTTPException(status_code=500, detail=f"An unexpected error occurred: {exc}")

    return TryOnResponse(
        success=True,
        id=result.session_id,
        session_id=result.session_id,
        status="pending",
        uploaded_garments=[
            GarmentResponse(id=g.id, original_url=g.original_url, category=g.category)
            for g in result.uploaded_garments
        ],
    )


@router.get("/tryon/sessions", response_model=List[SessionStatusResponse])
async def list_tryon_sessions(
    owner_id: str = Depends(get_owner_id),
    services: Services = Depends(provide_services),
) -> List[SessionStatusResponse]:
    """List the caller's non-deleted try-on sessions, newest first."""

    try:
        sessions = await services.sessions.find_all(owner_id)
    except UpstreamServiceError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to list sessions: {exc}")

    return [_session_response(session) for session in sessions]


@router.get("/tryon/garments", response_model=List[GarmentResponse])
async def list_garments(
    owner_id: str = Depends(get_owner_id),
    services: Services = Depends(provide_services),
) -> List[GarmentResponse]:
    try:
        garments = await services.garments.find_all(owner_id)
    except UpstreamServiceError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to list garments: {exc}")

    return [
        GarmentResponse(id=g.id, original_url=g.original_url, category=g.category)
        for g in garments
    ]


@router.delete("/tryon/garments/{garment_id}")
async def delete_garment(
    garment_id: str,
    owner_id: str = Depends(get_owner_id),
    services: Services = Depends(provide_services),
) -> dict:
    """Soft-delete a garment. Sessions that reference it keep their link."""

    try:
        await services.garments.soft_delete(garment_id, owner_id)
    except UpstreamServiceError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to delete garment: {exc}")

    logger.info("Garment soft-deleted", extra={"garment_id": garment_id})
    return {"success": True}


@router.delete("/tryon/sessions/{session_id}")
async def delete_tryon_session(
    session_id: str,
    owner_id: str = Depends(get_owner_id),
    services: Services = Depends(provide_services),
) -> dict:
    try:
        await services.sessions.soft_delete(session_id, owner_id)
    except UpstreamServiceError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to delete session: {exc}")

    logger.info("Try-on session soft-deleted", extra={"session_id": session_id})
    return {"success": True}


@router.get("/tryon/{session_id}", response_model=SessionStatusResponse)
async def get_tryon_status(
    session_id: str,
    owner_id: str = Depends(get_owner_id),
    services: Services = Depends(provide_services),
) -> SessionStatusResponse:
    """Retrieve the status and result URL of a try-on session."""

    logger.info("Retrieving try-on session", extra={"session_id": session_id})

    try:
        session = await services.sessions.find_by_id(session_id, owner_id)
    except UpstreamServiceError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to retrieve session: {exc}")

    if session is None:
        raise HTTPException(status_code=404, detail=f"Try-on session not found: {session_id}")

    return _session_response(session)


@router.get("/health")
async def health_check() -> dict:
    """Simple health check endpoint."""

    return {
        "status": "healthy",
        "service": "prendas-tryon",
        "version": "1.0.0",
    }
