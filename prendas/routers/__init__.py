"""Router package exposing all API routers."""

from fastapi import APIRouter

from .storage.router import router as storage_router
from .tryon.router import router as tryon_router

router = APIRouter()
router.include_router(tryon_router)
router.include_router(storage_router)

__all__ = ["router", "storage_router", "tryon_router"]
