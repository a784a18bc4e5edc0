"""Rank candidate sessions by recency and resolve latest/all queries."""

from datetime import datetime, timezone
from typing import List, Optional

from .models import (
    DEFAULT_EXTRACTED_AT,
    CookieField,
    SessionCandidate,
    SessionRecord,
)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware datetime.

    Naive timestamps are taken as UTC. Anything unparseable ranks like
    the DEFAULT_EXTRACTED_AT sentinel.
    """
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return _SENTINEL_TIME

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


_SENTINEL_TIME = datetime.fromisoformat(DEFAULT_EXTRACTED_AT.replace("Z", "+00:00"))


def sort_by_recency(candidates: List[SessionCandidate]) -> List[SessionCandidate]:
    """Most recent first; ties keep encounter order."""
    return sorted(candidates, key=lambda c: parse_timestamp(c.extracted_at), reverse=True)


def select_latest(candidates: List[SessionCandidate]) -> Optional[SessionCandidate]:
    ranked = sort_by_recency(candidates)
    return ranked[0] if ranked else None


def select_all(candidates: List[SessionCandidate]) -> List[SessionCandidate]:
    return sort_by_recency(candidates)


def find_cookie_field(record: SessionRecord) -> Optional[CookieField]:
    """Cookie name/value pair of a record, or None if it carries none."""
    return record.cookie
