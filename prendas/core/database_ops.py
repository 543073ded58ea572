"""
Database operations module for the Supabase garments and try_on_sessions tables.
Soft-deleted rows are filtered out of every query except direct lookups that
ask for them explicitly.
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from supabase import Client

from prendas.config import logger
from prendas.core.entities import Garment, Stance, TryOnSession, utcnow
from prendas.core.errors import NotFoundError, UpstreamServiceError
from prendas.core.ports import GarmentRepository, TryOnSessionRepository
from prendas.db import get_supabase_client

GARMENTS_TABLE = "garments"
SESSIONS_TABLE = "try_on_sessions"
SESSION_GARMENTS_TABLE = "session_garments"

SESSION_SELECT = "*, session_garments(position, garments(*))"


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _parse_embedding(value: Any) -> Optional[List[float]]:
    # pgvector columns come back from PostgREST as "[0.1,0.2,...]"
    if value is None:
        return None
    if isinstance(value, str):
        value = json.loads(value)
    return [float(v) for v in value]


def _execute(query: Any, action: str) -> List[Dict[str, Any]]:
    try:
        response = query.execute()
    except Exception as e:
        logger.error(f"Error while trying to {action}: {e}")
        raise UpstreamServiceError("database", f"Failed to {action}: {e}") from e
    return response.data or []


def garment_from_row(row: Dict[str, Any]) -> Garment:
    return Garment(
        id=str(row["id"]),
        original_url=row["original_url"],
        owner_id=str(row["user_id"]),
        category=row.get("category") or "clothing",
        hash=row.get("hash"),
        metadata=row.get("metadata"),
        embedding=_parse_embedding(row.get("embedding")),
        deleted_at=_parse_timestamp(row.get("deleted_at")),
        created_at=_parse_timestamp(row.get("created_at")) or utcnow(),
    )


def session_from_row(row: Dict[str, Any]) -> TryOnSession:
    links = sorted(row.get("session_garments") or [], key=lambda link: link.get("position", 0))
    garments = []
    for link in links:
        garment_row = link.get("garments")
        if isinstance(garment_row, list):
            garment_row = garment_row[0] if garment_row else None
        if garment_row:
            garments.append(garment_from_row(garment_row))

    return TryOnSession(
        id=str(row["id"]),
        owner_id=str(row["user_id"]),
        mannequin_url=row["mannequin_url"],
        stance=Stance.from_selector(row.get("stance")),
        result_url=row.get("result_url"),
        garments=garments,
        metadata=row.get("metadata"),
        embedding=_parse_embedding(row.get("embedding")),
        deleted_at=_parse_timestamp(row.get("deleted_at")),
        created_at=_parse_timestamp(row.get("created_at")) or utcnow(),
    )


def _readable_session(row: Dict[str, Any]) -> Optional[TryOnSession]:
    try:
        return session_from_row(row)
    except ValueError as e:
        logger.warning(f"Skipping unreadable try-on session {row.get('id')}: {e}")
        return None


def _readable_sessions(rows: List[Dict[str, Any]]) -> List[TryOnSession]:
    sessions = (_readable_session(row) for row in rows)
    return [session for session in sessions if session is not None]


class _SupabaseRepository:
    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client


class SupabaseGarmentRepository(_SupabaseRepository, GarmentRepository):
    """Garment persistence on the Supabase `garments` table."""

    async def create(self, garment: Garment) -> Garment:
        record_data = {
            "original_url": garment.original_url,
            "user_id": garment.owner_id,
            "category": garment.category,
            "hash": garment.hash,
            "created_at": garment.created_at.isoformat(),
        }

        logger.info(f"Creating garment record for user: {garment.owner_id}")
        rows = _execute(
            self.client.table(GARMENTS_TABLE).insert(record_data), "create garment record"
        )
        if not rows:
            raise UpstreamServiceError("database", "Failed to create garment record: No data returned")

        created = garment_from_row(rows[0])
        logger.info(f"Successfully created garment record with ID: {created.id}")
        return created

    async def find_by_id(
        self, garment_id: str, owner_id: str, include_deleted: bool = False
    ) -> Optional[Garment]:
        query = (
            self.client.table(GARMENTS_TABLE)
            .select("*")
            .eq("id", garment_id)
            .eq("user_id", owner_id)
        )
        if not include_deleted:
            query = query.is_("deleted_at", "null")

        rows = _execute(query.limit(1), f"retrieve garment {garment_id}")
        if not rows:
            logger.debug(f"Garment {garment_id} not found for user {owner_id}")
            return None
        return garment_from_row(rows[0])

    async def find_by_hash(self, content_hash: str, owner_id: str) -> Optional[Garment]:
        rows = _execute(
            self.client.table(GARMENTS_TABLE)
            .select("*")
            .eq("hash", content_hash)
            .eq("user_id", owner_id)
            .is_("deleted_at", "null")
            .order("created_at")
            .limit(1),
            "look up garment by hash",
        )
        return garment_from_row(rows[0]) if rows else None

    async def find_all(self, owner_id: str) -> List[Garment]:
        rows = _execute(
            self.client.table(GARMENTS_TABLE)
            .select("*")
            .eq("user_id", owner_id)
            .is_("deleted_at", "null")
            .order("created_at", desc=True),
            f"list garments for user {owner_id}",
        )
        return [garment_from_row(row) for row in rows]

    async def find_unprocessed(self) -> List[Garment]:
        rows = _execute(
            self.client.table(GARMENTS_TABLE)
            .select("*")
            .is_("metadata", "null")
            .is_("deleted_at", "null"),
            "list unprocessed garments",
        )
        return [garment_from_row(row) for row in rows]

    async def update_enrichment(
        self, garment_id: str, metadata: Dict[str, Any], embedding: List[float]
    ) -> Garment:
        rows = _execute(
            self.client.table(GARMENTS_TABLE)
            .update({"metadata": metadata, "embedding": embedding})
            .eq("id", garment_id),
            f"update enrichment of garment {garment_id}",
        )
        if not rows:
            raise NotFoundError("Garment", garment_id)
        return garment_from_row(rows[0])

    async def soft_delete(self, garment_id: str, owner_id: str) -> None:
        logger.info(f"Soft-deleting garment {garment_id}")
        _execute(
            self.client.table(GARMENTS_TABLE)
            .update({"deleted_at": utcnow().isoformat()})
            .eq("id", garment_id)
            .eq("user_id", owner_id)
            .is_("deleted_at", "null"),
            f"soft-delete garment {garment_id}",
        )


class SupabaseTryOnSessionRepository(_SupabaseRepository, TryOnSessionRepository):
    """Session persistence on `try_on_sessions` plus the `session_garments` join table."""

    async def create(self, session: TryOnSession) -> TryOnSession:
        record_data = {
            "user_id": session.owner_id,
            "mannequin_url": session.mannequin_url,
            "stance": session.stance.value,
            "result_url": None,
            "created_at": session.created_at.isoformat(),
        }

        logger.info(
            f"Creating try-on session for user {session.owner_id} with {len(session.garments)} garment(s)"
        )
        rows = _execute(
            self.client.table(SESSIONS_TABLE).insert(record_data), "create try-on session"
        )
        if not rows:
            raise UpstreamServiceError("database", "Failed to create try-on session: No data returned")

        session_id = str(rows[0]["id"])
        links = [
            {"session_id": session_id, "garment_id": garment.id, "position": position}
            for position, garment in enumerate(session.garments)
        ]
        try:
            _execute(
                self.client.table(SESSION_GARMENTS_TABLE).insert(links),
                f"link garments to session {session_id}",
            )
        except UpstreamServiceError:
            self._discard(session_id)
            raise

        logger.info(f"Successfully created try-on session with ID: {session_id}")
        return TryOnSession(
            id=session_id,
            owner_id=session.owner_id,
            mannequin_url=session.mannequin_url,
            stance=session.stance,
            garments=list(session.garments),
            created_at=_parse_timestamp(rows[0].get("created_at")) or session.created_at,
        )

    def _discard(self, session_id: str) -> None:
        # Never linked, so the row would be a session without garments.
        try:
            _execute(
                self.client.table(SESSIONS_TABLE).delete().eq("id", session_id),
                f"discard unlinked try-on session {session_id}",
            )
        except UpstreamServiceError:
            logger.error(f"Unlinked try-on session {session_id} could not be discarded")

    async def _find_one(self, query: Any, action: str) -> Optional[TryOnSession]:
        rows = _execute(query.limit(1), action)
        return _readable_session(rows[0]) if rows else None

    async def find_by_id(
        self, session_id: str, owner_id: str, include_deleted: bool = False
    ) -> Optional[TryOnSession]:
        query = (
            self.client.table(SESSIONS_TABLE)
            .select(SESSION_SELECT)
            .eq("id", session_id)
            .eq("user_id", owner_id)
        )
        if not include_deleted:
            query = query.is_("deleted_at", "null")
        return await self._find_one(query, f"retrieve try-on session {session_id}")

    async def find_all(self, owner_id: str) -> List[TryOnSession]:
        rows = _execute(
            self.client.table(SESSIONS_TABLE)
            .select(SESSION_SELECT)
            .eq("user_id", owner_id)
            .is_("deleted_at", "null")
            .order("created_at", desc=True),
            f"list try-on sessions for user {owner_id}",
        )
        return _readable_sessions(rows)

    async def find_unprocessed(self) -> List[TryOnSession]:
        # Sessions without a result cannot be analyzed yet.
        rows = _execute(
            self.client.table(SESSIONS_TABLE)
            .select(SESSION_SELECT)
            .is_("metadata", "null")
            .is_("deleted_at", "null")
            .not_.is_("result_url", "null"),
            "list unprocessed try-on sessions",
        )
        return _readable_sessions(rows)

    async def mark_completed(
        self, session_id: str, owner_id: str, result_url: str
    ) -> TryOnSession:
        logger.info(f"Updating try-on session {session_id} with result {result_url}")
        _execute(
            self.client.table(SESSIONS_TABLE)
            .update({"result_url": result_url})
            .eq("id", session_id)
            .eq("user_id", owner_id)
            .is_("result_url", "null"),
            f"store result of try-on session {session_id}",
        )

        # A concurrent run may already have stored its own result.
        session = await self.find_by_id(session_id, owner_id, include_deleted=True)
        if session is None:
            raise NotFoundError("TryOnSession", session_id)
        return session

    async def update_enrichment(
        self, session_id: str, metadata: Dict[str, Any], embedding: List[float]
    ) -> TryOnSession:
        rows = _execute(
            self.client.table(SESSIONS_TABLE)
            .update({"metadata": metadata, "embedding": embedding})
            .eq("id", session_id)
            .not_.is_("result_url", "null"),
            f"update enrichment of try-on session {session_id}",
        )
        session = None
        if rows:
            session = await self._find_one(
                self.client.table(SESSIONS_TABLE).select(SESSION_SELECT).eq("id", session_id),
                f"reload try-on session {session_id}",
            )
        if session is None:
            raise NotFoundError("TryOnSession", session_id)
        return session

    async def soft_delete(self, session_id: str, owner_id: str) -> None:
        logger.info(f"Soft-deleting try-on session {session_id}")
        _execute(
            self.client.table(SESSIONS_TABLE)
            .update({"deleted_at": utcnow().isoformat()})
            .eq("id", session_id)
            .eq("user_id", owner_id)
            .is_("deleted_at", "null"),
            f"soft-delete try-on session {session_id}",
        )


__all__ = [
    "SupabaseGarmentRepository",
    "SupabaseTryOnSessionRepository",
    "garment_from_row",
    "session_from_row",
]
