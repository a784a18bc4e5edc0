"""
Session Module - Black Box Interface

Purpose: Resolve which captured platform session to use right now
Interface: SessionResolver (get_latest_session(), get_all_sessions(), ...)
Hidden: Snapshot caching, single-flight reloads, validity and recency rules

Replaceable with any resolver that answers the same queries.
"""

from .cache import SessionCache, Snapshot
from .models import (
    DEFAULT_EXTRACTED_AT,
    METADATA_FIELDS,
    CookieField,
    Platform,
    PlatformCookieInfo,
    Resolution,
    ResolutionStatus,
    SessionInfo,
    SessionRecord,
    SessionStats,
    StoredSessions,
    UserCredentials,
)
from .resolver import SessionResolver

__all__ = [
    "DEFAULT_EXTRACTED_AT",
    "METADATA_FIELDS",
    "CookieField",
    "Platform",
    "PlatformCookieInfo",
    "Resolution",
    "ResolutionStatus",
    "SessionCache",
    "SessionInfo",
    "SessionRecord",
    "SessionResolver",
    "SessionStats",
    "Snapshot",
    "StoredSessions",
    "UserCredentials",
]
