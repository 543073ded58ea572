"""Garment and try-on session records shared by the orchestrator and workers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Stance(str, Enum):
    """Anchor (mannequin) variants a session can be composited onto."""

    FEMALE = "female"
    MALE = "male"

    @property
    def anchor_filename(self) -> str:
        return f"{self.value}_mannequin_anchor.png"

    @classmethod
    def default(cls) -> "Stance":
        return cls.FEMALE

    @classmethod
    def from_selector(cls, value: Optional[str]) -> "Stance":
        """Map a client supplied selector to a stance, unknown values fall back to the default."""
        if not value:
            return cls.default()
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.default()


class SessionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    ENRICHED = "enriched"
    DELETED = "deleted"


@dataclass
class Garment:
    """A stored reference to one clothing or accessory image."""

    original_url: str
    owner_id: str
    category: str = "clothing"
    hash: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    embedding: Optional[List[float]] = None
    deleted_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    id: Optional[str] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_enriched(self) -> bool:
        return self.metadata is not None


@dataclass
class TryOnSession:
    """One try-on request and its outcome."""

    owner_id: str
    mannequin_url: str
    garments: List[Garment]
    stance: Stance = Stance.FEMALE
    result_url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    embedding: Optional[List[float]] = None
    deleted_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    id: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.garments:
            raise ValueError("A try-on session needs at least one garment")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def status(self) -> SessionStatus:
        # Completed/Enriched are never stored, they follow from the fields.
        if self.deleted_at is not None:
            return SessionStatus.DELETED
        if self.metadata is not None:
            return SessionStatus.ENRICHED
        if self.result_url is not None:
            return SessionStatus.COMPLETED
        return SessionStatus.PENDING
