"""Queue names, job kinds and payload builders shared by producers and workers."""

from typing import Any, Dict

TRYON_QUEUE = "try-on"
GARMENT_ANALYSIS_QUEUE = "garment-analysis"
SESSION_ANALYSIS_QUEUE = "session-analysis"

PROCESS_SESSION = "process-session"
ANALYZE_GARMENT = "analyze-garment"
SYNC_GARMENTS = "sync-garments"
ANALYZE_SESSION = "analyze-session"
SYNC_SESSIONS = "sync-sessions"


def processing_payload(session_id: str, owner_id: str, stance: str) -> Dict[str, Any]:
    return {"sessionId": session_id, "ownerId": owner_id, "stance": stance}


def analyze_payload(entity_id: str, owner_id: str) -> Dict[str, Any]:
    return {"entityId": entity_id, "ownerId": owner_id}
