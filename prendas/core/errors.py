"""Error taxonomy for the submission path and the background workers."""

from typing import Optional


class TryOnError(Exception):
    """Base class for every error raised by the try-on core."""


class AdmissionRejected(TryOnError):
    """The processing queue is saturated; nothing was persisted."""

    def __init__(self, reason: str, waiting: int, limit: int) -> None:
        super().__init__(f"{reason} ({waiting} jobs waiting, limit {limit})")
        self.reason = reason
        self.waiting = waiting
        self.limit = limit


class ValidationError(TryOnError):
    """The submission cannot produce a session."""


class NotFoundError(TryOnError):
    """A session or garment is missing or not owned by the caller."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class UpstreamServiceError(TryOnError):
    """A generative, storage, metadata or database call failed."""

    def __init__(self, service: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status_code = status_code


__all__ = [
    "TryOnError",
    "AdmissionRejected",
    "ValidationError",
    "NotFoundError",
    "UpstreamServiceError",
]
