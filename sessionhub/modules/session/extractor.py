"""Filter a raw session snapshot down to usable records for one platform."""

from typing import Any, List, Mapping, Optional

from .models import (
    DEFAULT_EXTRACTED_AT,
    SessionCandidate,
    SessionRecord,
    StoredSessions,
    UserCredentials,
)


def is_valid_session_data(raw: Any) -> bool:
    """A record is usable iff it has a non-empty string sessionId."""
    if not isinstance(raw, Mapping):
        return False
    session_id = raw.get("sessionId")
    return isinstance(session_id, str) and bool(session_id)


def extract_platform_sessions(
    snapshot: StoredSessions,
    platform: str,
    credentials: Optional[UserCredentials] = None,
) -> List[SessionCandidate]:
    """
    Extract candidate sessions for a platform.

    Args:
        snapshot: All stored sessions keyed by internal id
        platform: Target platform name
        credentials: Optional owner filter; email and password must both
            match exactly

    Returns:
        Candidates in snapshot order, each with a sortable extractedAt
    """
    candidates = []

    for internal_id, platform_sessions in snapshot.items():
        if not isinstance(platform_sessions, Mapping):
            continue

        raw = platform_sessions.get(platform)
        if not is_valid_session_data(raw):
            continue

        record = SessionRecord.from_mapping(raw)
        if credentials is not None and not credentials.matches(record):
            continue

        candidates.append(
            SessionCandidate(
                record=record,
                internal_id=internal_id,
                extracted_at=record.extracted_at or DEFAULT_EXTRACTED_AT,
            )
        )

    return candidates
