from __future__ import annotations

from booking_agent.domain.entities.session import Session


def should_process(session: Session, event_id: str) -> bool:
    """Record event_id on the session unless it is a redelivery of the last handled event."""
    if event_id == session.last_processed_event_id:
        return False
    session.last_processed_event_id = event_id
    return True
