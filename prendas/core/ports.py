"""Collaborator interfaces the orchestrator and workers depend on.

Each interface has one production implementation (Supabase, Gemini, Celery)
and can be swapped for an in-memory fake.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from prendas.core.entities import Garment, TryOnSession


@dataclass(frozen=True)
class RecurringJob:
    """A recurring trigger registered on a queue."""

    key: str
    name: str
    pattern: str


class JobQueue:
    """Durable queue of named jobs with dict payloads."""

    name: str = ""

    async def enqueue(self, job_kind: str, payload: Dict[str, Any]) -> str:
        raise NotImplementedError

    async def count_waiting(self) -> int:
        raise NotImplementedError

    async def list_recurring(self) -> List[RecurringJob]:
        raise NotImplementedError

    async def remove_recurring(self, key: str) -> None:
        raise NotImplementedError

    async def schedule_recurring(self, job_kind: str, pattern: str) -> RecurringJob:
        raise NotImplementedError


@dataclass(frozen=True)
class UploadTarget:
    """Where a client uploads one file directly, and the key to submit afterwards."""

    key: str
    upload_url: str
    download_url: str
    token: Optional[str] = None


class ObjectStorage:
    """Public-readable object storage addressed by opaque keys."""

    async def put(self, key: str, data: bytes, mime_type: str) -> str:
        raise NotImplementedError

    async def get(self, key: str) -> bytes:
        raise NotImplementedError

    def url_to_key(self, url: str) -> str:
        raise NotImplementedError

    def public_url(self, key: str) -> str:
        raise NotImplementedError

    async def create_upload_target(self, filename: str, mime_type: str) -> UploadTarget:
        raise NotImplementedError


class GenerativeImageService:
    async def compose(
        self, anchor_image: bytes, garment_images: List[bytes], instruction: str
    ) -> Optional[bytes]:
        """Return the composited image, or None when the service produced no image."""
        raise NotImplementedError


class MetadataService:
    async def extract(self, image: bytes) -> Dict[str, Any]:
        raise NotImplementedError

    async def embed(self, text: str) -> List[float]:
        raise NotImplementedError


class GarmentRepository:
    async def create(self, garment: Garment) -> Garment:
        raise NotImplementedError

    async def find_by_id(
        self, garment_id: str, owner_id: str, include_deleted: bool = False
    ) -> Optional[Garment]:
        raise NotImplementedError

    async def find_by_hash(self, content_hash: str, owner_id: str) -> Optional[Garment]:
        raise NotImplementedError

    async def find_all(self, owner_id: str) -> List[Garment]:
        raise NotImplementedError

    async def find_unprocessed(self) -> List[Garment]:
        raise NotImplementedError

    async def update_enrichment(
        self, garment_id: str, metadata: Dict[str, Any], embedding: List[float]
    ) -> Garment:
        raise NotImplementedError

    async def soft_delete(self, garment_id: str, owner_id: str) -> None:
        raise NotImplementedError


class TryOnSessionRepository:
    async def create(self, session: TryOnSession) -> TryOnSession:
        raise NotImplementedError

    async def find_by_id(
        self, session_id: str, owner_id: str, include_deleted: bool = False
    ) -> Optional[TryOnSession]:
        raise NotImplementedError

    async def find_all(self, owner_id: str) -> List[TryOnSession]:
        raise NotImplementedError

    async def find_unprocessed(self) -> List[TryOnSession]:
        raise NotImplementedError

    async def mark_completed(
        self, session_id: str, owner_id: str, result_url: str
    ) -> TryOnSession:
        """Set result_url if it is still empty and return the stored session."""
        raise NotImplementedError

    async def update_enrichment(
        self, session_id: str, metadata: Dict[str, Any], embedding: List[float]
    ) -> TryOnSession:
        raise NotImplementedError

    async def soft_delete(self, session_id: str, owner_id: str) -> None:
        raise NotImplementedError
