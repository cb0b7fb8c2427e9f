from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from booking_agent.core.config import settings
from booking_agent.wiring.dependencies import get_session_store


router = APIRouter()


def debug_enabled() -> bool:
    return settings.DEBUG_ENDPOINTS_ENABLED and settings.ENV.lower() in {"dev", "local"}


@router.get("/debug/sessions/{session_id}")
def get_session(session_id: str) -> dict[str, Any]:
    """Raw session state for local troubleshooting. Access tokens are masked."""
    if not debug_enabled():
        raise HTTPException(status_code=404, detail="Not Found")
    session = get_session_store().find_by_id(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session.to_debug_dict()
