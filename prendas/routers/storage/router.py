"""FastAPI router handing out signed upload targets."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from prendas.config import logger
from prendas.core.errors import UpstreamServiceError
from prendas.dependencies import Services

from ..tryon.dependencies import get_owner_id, provide_services
from .models import UploadParamsResponse

router = APIRouter(prefix="/api/v1/storage", tags=["Storage"])


@router.get("/upload-params", response_model=UploadParamsResponse)
async def get_upload_params(
    filename: Optional[str] = Query(None),
    mime_type: Optional[str] = Query(None, alias="mimeType"),
    owner_id: str = Depends(get_owner_id),
    services: Services = Depends(provide_services),
) -> UploadParamsResponse:
    """Return a signed URL the client uploads a garment image to."""

    if not filename or not mime_type:
        raise HTTPException(status_code=400, detail="filename and mimeType are required")

    try:
        target = await services.storage.create_upload_target(filename, mime_type)
    except UpstreamServiceError as exc:
        logger.error("Failed to create upload target", extra={"error": str(exc)})
        raise HTTPException(status_code=502, detail=f"Failed to create upload URL: {exc}")

    logger.info("Upload target issued", extra={"owner_id": owner_id, "key": target.key})
    return UploadParamsResponse(
        upload_url=target.upload_url,
        download_url=target.download_url,
        key=target.key,
        token=target.token,
    )
