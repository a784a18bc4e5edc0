"""
Session data models.

These models define the structure of session data passed between the
cache, extractor, selector and resolver.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

# Raw store shapes: internal id -> platform -> record fields
PlatformSessionMap = Dict[str, Dict[str, Any]]
StoredSessions = Dict[str, PlatformSessionMap]

# Sentinel used when a record carries no extraction timestamp
DEFAULT_EXTRACTED_AT = "1970-01-01T00:00:00.000Z"

# Fields that describe a record rather than authenticate it
METADATA_FIELDS = frozenset(
    {"userEmail", "userPassword", "sessionId", "extractedAt", "extractedFrom", "source"}
)


class Platform(str, Enum):
    """External platforms with captured sessions."""

    MARKETINOUT = "marketinout"
    TRADINGVIEW = "tradingview"


class ResolutionStatus(str, Enum):
    """Outcome of a session lookup."""

    FOUND = "found"
    EMPTY = "empty"
    STORE_ERROR = "store_error"


@dataclass(frozen=True)
class CookieField:
    """Auxiliary credential field usable as an HTTP cookie."""

    key: str
    value: str


@dataclass(frozen=True)
class UserCredentials:
    """Opaque equality filter; never validated or hashed."""

    user_email: str
    user_password: str

    def matches(self, record: "SessionRecord") -> bool:
        return (
            record.user_email == self.user_email
            and record.user_password == self.user_password
        )


def _string_field(raw: Mapping[str, Any], name: str) -> Optional[str]:
    value = raw.get(name)
    return value if isinstance(value, str) else None


def discover_cookie_field(raw: Mapping[str, Any]) -> Optional[CookieField]:
    """
    Find the first non-metadata field with a non-empty string value.

    Cookie-authenticated platforms store the cookie under a name that is
    not known in advance (e.g. ASPSESSIONIDXXXX), so it is located by
    elimination against METADATA_FIELDS.
    """
    for key, value in raw.items():
        if key in METADATA_FIELDS:
            continue
        if isinstance(value, str) and value:
            return CookieField(key=key, value=value)
    return None


@dataclass(frozen=True)
class SessionRecord:
    """One captured login session for one platform."""

    session_id: Optional[str]
    extracted_at: Optional[str] = None
    extracted_from: Optional[str] = None
    source: Optional[str] = None
    user_email: Optional[str] = None
    user_password: Optional[str] = None
    cookie: Optional[CookieField] = None
    fields: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "SessionRecord":
        """Build a record from the raw field mapping held in the store."""
        return cls(
            session_id=_string_field(raw, "sessionId"),
            extracted_at=_string_field(raw, "extractedAt"),
            extracted_from=_string_field(raw, "extractedFrom"),
            source=_string_field(raw, "source"),
            user_email=_string_field(raw, "userEmail"),
            user_password=_string_field(raw, "userPassword"),
            cookie=discover_cookie_field(raw),
            fields=dict(raw),
        )

    @property
    def is_valid(self) -> bool:
        return bool(self.session_id)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.fields)


@dataclass(frozen=True)
class SessionInfo:
    """Resolved result of a session query."""

    session_data: SessionRecord
    internal_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"sessionData": self.session_data.to_dict(), "internalId": self.internal_id}


@dataclass(frozen=True)
class PlatformCookieInfo:
    """SessionInfo for cookie-authenticated platforms, with the resolved cookie."""

    key: str
    value: str
    internal_id: str
    session_data: SessionRecord

    @classmethod
    def from_session(cls, info: SessionInfo, cookie: CookieField) -> "PlatformCookieInfo":
        return cls(
            key=cookie.key,
            value=cookie.value,
            internal_id=info.internal_id,
            session_data=info.session_data,
        )


@dataclass(frozen=True)
class SessionCandidate:
    """Accepted record paired with its owner and a sortable timestamp."""

    record: SessionRecord
    internal_id: str
    extracted_at: str

    def to_info(self) -> SessionInfo:
        return SessionInfo(session_data=self.record, internal_id=self.internal_id)


@dataclass
class SessionStats:
    """Session counts across the whole snapshot."""

    total_sessions: int = 0
    platform_counts: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"totalSessions": self.total_sessions, "platformCounts": dict(self.platform_counts)}


@dataclass(frozen=True)
class Resolution:
    """
    Explicit lookup result.

    Lets callers tell "no usable session" (EMPTY) apart from "the
    backing store could not be read" (STORE_ERROR).
    """

    status: ResolutionStatus
    session: Optional[SessionInfo] = None
    error: Optional[BaseException] = None

    @classmethod
    def found(cls, session: SessionInfo) -> "Resolution":
        return cls(ResolutionStatus.FOUND, session=session)

    @classmethod
    def empty(cls) -> "Resolution":
        return cls(ResolutionStatus.EMPTY)

    @classmethod
    def store_error(cls, error: BaseException) -> "Resolution":
        return cls(ResolutionStatus.STORE_ERROR, error=error)

    @property
    def is_found(self) -> bool:
        return self.status is ResolutionStatus.FOUND


__all__ = [
    "DEFAULT_EXTRACTED_AT",
    "METADATA_FIELDS",
    "CookieField",
    "Platform",
    "PlatformCookieInfo",
    "PlatformSessionMap",
    "Resolution",
    "ResolutionStatus",
    "SessionCandidate",
    "SessionInfo",
    "SessionRecord",
    "SessionStats",
    "StoredSessions",
    "UserCredentials",
    "discover_cookie_field",
]
