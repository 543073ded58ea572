"""In-memory collaborators shared by the test suite."""

from __future__ import annotations

import copy
import io
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from PIL import Image

from prendas.core.entities import Garment, Stance, TryOnSession, utcnow
from prendas.core.errors import NotFoundError, UpstreamServiceError
from prendas.core.jobs import GARMENT_ANALYSIS_QUEUE, SESSION_ANALYSIS_QUEUE, TRYON_QUEUE
from prendas.core.ports import (
    GarmentRepository,
    GenerativeImageService,
    JobQueue,
    MetadataService,
    ObjectStorage,
    RecurringJob,
    TryOnSessionRepository,
    UploadTarget,
)
from prendas.dependencies import Services


def make_png(width: int = 200, height: int = 100, color=(200, 30, 30, 255)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


SAMPLE_METADATA: Dict[str, Any] = {
    "physical": {
        "category": {"es": "camisa", "en": "shirt"},
        "subcategory": {"es": "camisa de vestir", "en": "dress shirt"},
        "dominant_color": {"name": {"es": "rojo", "en": "red"}, "hex": "#C81E1E"},
        "color_palette": ["#C81E1E"],
        "material": {"es": "algodón", "en": "cotton"},
        "texture_pattern": {"es": "liso", "en": "solid"},
    },
    "design": {
        "neckline": {"es": "cuello clásico", "en": "classic collar"},
        "sleeve_length": {"es": "larga", "en": "long"},
        "fit": {"es": "regular", "en": "regular"},
        "closure_type": {"es": "botones", "en": "buttons"},
        "details": [{"es": "bolsillo", "en": "pocket"}],
    },
    "context": {
        "occasion": [{"es": "oficina", "en": "office"}],
        "season": {"es": "todo el año", "en": "all year"},
        "gender": {"es": "unisex", "en": "unisex"},
        "visual_style": {"es": "formal", "en": "formal"},
    },
    "ai_description": {"es": "Camisa roja de algodón", "en": "Red cotton shirt"},
}


class FakeQueue(JobQueue):
    def __init__(self, name: str, waiting: int = 0):
        self.name = name
        self.waiting = waiting
        self.jobs: List[tuple] = []
        self.recurring: Dict[str, RecurringJob] = {}
        self.fail_enqueue = False

    async def enqueue(self, job_kind: str, payload: Dict[str, Any]) -> str:
        if self.fail_enqueue:
            raise ConnectionError("broker unavailable")
        self.jobs.append((job_kind, dict(payload)))
        return str(uuid.uuid4())

    async def count_waiting(self) -> int:
        return self.waiting

    async def list_recurring(self) -> List[RecurringJob]:
        return list(self.recurring.values())

    async def remove_recurring(self, key: str) -> None:
        self.recurring.pop(key, None)

    async def schedule_recurring(self, job_kind: str, pattern: str) -> RecurringJob:
        job = RecurringJob(key=f"{job_kind}:{uuid.uuid4()}", name=job_kind, pattern=pattern)
        self.recurring[job.key] = job
        return job


class FakeStorage(ObjectStorage):
    base_url = "https://storage.test/images/"

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.fail_put = False

    def public_url(self, key: str) -> str:
        return f"{self.base_url}{key}"

    def url_to_key(self, url: str) -> str:
        return url.split("/images/", 1)[-1]

    async def put(self, key: str, data: bytes, mime_type: str) -> str:
        if self.fail_put:
            raise UpstreamServiceError("storage", "upload failed")
        self.objects[key] = data
        return self.public_url(key)

    async def get(self, key: str) -> bytes:
        if key not in self.objects:
            raise UpstreamServiceError("storage", f"missing object {key}")
        return self.objects[key]

    async def create_upload_target(self, filename: str, mime_type: str) -> UploadTarget:
        key = f"uploads/{filename}"
        return UploadTarget(
            key=key,
            upload_url=f"https://storage.test/upload/sign/images/{key}?token=t",
            download_url=self.public_url(key),
            token="t",
        )


class FakeGenerator(GenerativeImageService):
    def __init__(self, result: Optional[bytes] = None, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def compose(self, anchor_image, garment_images, instruction):
        self.calls.append(
            {"anchor": anchor_image, "garments": list(garment_images), "instruction": instruction}
        )
        if self.error:
            raise self.error
        return self.result


class FakeMetadataService(MetadataService):
    def __init__(self, metadata: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None):
        self.metadata = metadata if metadata is not None else SAMPLE_METADATA
        self.error = error
        self.embedded: List[str] = []

    async def extract(self, image: bytes) -> Dict[str, Any]:
        if self.error:
            raise self.error
        return copy.deepcopy(self.metadata)

    async def embed(self, text: str) -> List[float]:
        self.embedded.append(text)
        return [0.1] * 768


class InMemoryGarmentRepository(GarmentRepository):
    def __init__(self):
        self.rows: Dict[str, Garment] = {}

    async def create(self, garment: Garment) -> Garment:
        stored = copy.deepcopy(garment)
        stored.id = str(uuid.uuid4())
        self.rows[stored.id] = stored
        return copy.deepcopy(stored)

    async def find_by_id(self, garment_id, owner_id, include_deleted=False):
        garment = self.rows.get(garment_id)
        if garment is None or garment.owner_id != owner_id:
            return None
        if garment.is_deleted and not include_deleted:
            return None
        return copy.deepcopy(garment)

    async def find_by_hash(self, content_hash, owner_id):
        for garment in self.rows.values():
            if garment.hash == content_hash and garment.owner_id == owner_id and not garment.is_deleted:
                return copy.deepcopy(garment)
        return None

    async def find_all(self, owner_id):
        return [
            copy.deepcopy(g)
            for g in self.rows.values()
            if g.owner_id == owner_id and not g.is_deleted
        ]

    async def find_unprocessed(self):
        return [
            copy.deepcopy(g)
            for g in self.rows.values()
            if g.metadata is None and not g.is_deleted
        ]

    async def update_enrichment(self, garment_id, metadata, embedding):
        if garment_id not in self.rows:
            raise NotFoundError("Garment", garment_id)
        self.rows[garment_id].metadata = metadata
        self.rows[garment_id].embedding = embedding
        return copy.deepcopy(self.rows[garment_id])

    async def soft_delete(self, garment_id, owner_id):
        garment = self.rows.get(garment_id)
        if garment and garment.owner_id == owner_id and not garment.is_deleted:
            garment.deleted_at = utcnow()


class InMemoryTryOnSessionRepository(TryOnSessionRepository):
    def __init__(self):
        self.rows: Dict[str, TryOnSession] = {}
        self.fail_enrichment = False

    async def create(self, session: TryOnSession) -> TryOnSession:
        stored = copy.deepcopy(session)
        stored.id = str(uuid.uuid4())
        stored.result_url = None
        self.rows[stored.id] = stored
        return copy.deepcopy(stored)

    async def find_by_id(self, session_id, owner_id, include_deleted=False):
        session = self.rows.get(session_id)
        if session is None or session.owner_id != owner_id:
            return None
        if session.is_deleted and not include_deleted:
            return None
        return copy.deepcopy(session)

    async def find_all(self, owner_id):
        return [
            copy.deepcopy(s)
            for s in self.rows.values()
            if s.owner_id == owner_id and not s.is_deleted
        ]

    async def find_unprocessed(self):
        return [
            copy.deepcopy(s)
            for s in self.rows.values()
            if s.metadata is None and not s.is_deleted and s.result_url
        ]

    async def mark_completed(self, session_id, owner_id, result_url):
        session = self.rows.get(session_id)
        if session is None or session.owner_id != owner_id:
            raise NotFoundError("TryOnSession", session_id)
        if session.result_url is None:
            session.result_url = result_url
        return copy.deepcopy(session)

    async def update_enrichment(self, session_id, metadata, embedding):
        if self.fail_enrichment:
            raise UpstreamServiceError("database", "enrichment update failed")
        session = self.rows.get(session_id)
        if session is None or session.result_url is None:
            raise NotFoundError("TryOnSession", session_id)
        session.metadata = metadata
        session.embedding = embedding
        return copy.deepcopy(session)

    async def soft_delete(self, session_id, owner_id):
        session = self.rows.get(session_id)
        if session and session.owner_id == owner_id and not session.is_deleted:
            session.deleted_at = utcnow()


@pytest.fixture
def services() -> Services:
    return Services(
        garments=InMemoryGarmentRepository(),
        sessions=InMemoryTryOnSessionRepository(),
        storage=FakeStorage(),
        generator=FakeGenerator(result=make_png(784, 1024, (10, 10, 200, 255))),
        metadata=FakeMetadataService(),
        tryon_queue=FakeQueue(TRYON_QUEUE),
        garment_queue=FakeQueue(GARMENT_ANALYSIS_QUEUE),
        session_queue=FakeQueue(SESSION_ANALYSIS_QUEUE),
    )


@pytest.fixture
def anchor_dir(tmp_path: Path) -> Path:
    for stance in Stance:
        (tmp_path / stance.anchor_filename).write_bytes(
            make_png(784, 1024, (128, 128, 128, 255))
        )
    return tmp_path
