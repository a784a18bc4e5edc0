"""
Sessionhub API data models.

These models define the request and response bodies of the REST API.
Field names follow the camelCase used by the browser extension.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sessionhub.modules.session import PlatformCookieInfo, SessionInfo, SessionStats


# Request Models (API Input)


class CaptureSessionRequest(BaseModel):
    """Session captured by the browser extension."""

    model_config = ConfigDict(extra="allow")

    sessionId: str = Field(..., description="Platform session identifier")
    internalId: Optional[str] = Field(None, description="Internal session id to save under")
    extractedAt: Optional[str] = Field(None, description="ISO-8601 capture time")
    extractedFrom: Optional[str] = Field(None, description="URL the session was captured on")
    source: Optional[str] = Field(None, description="Capture source, e.g. browser-extension")
    userEmail: Optional[str] = Field(None, description="Owner email")
    userPassword: Optional[str] = Field(None, description="Owner password")

    @field_validator("sessionId")
    @classmethod
    def validate_session_id(cls, v):
        """Reject captures that would never be resolvable."""
        if not v.strip():
            raise ValueError("sessionId must not be empty")
        return v

    def record_fields(self) -> Dict[str, Any]:
        """Fields to persist, without the routing-only internalId."""
        return self.model_dump(exclude={"internalId"}, exclude_none=True)


# Response Models (API Output)


class SessionInfoResponse(BaseModel):
    """One resolved session."""

    internalId: str
    sessionData: Dict[str, Any]

    @classmethod
    def from_info(cls, info: SessionInfo) -> "SessionInfoResponse":
        return cls(internalId=info.internal_id, sessionData=info.session_data.to_dict())


class SessionStatsResponse(BaseModel):
    """Session counts across the store."""

    totalSessions: int
    platformCounts: Dict[str, int]

    @classmethod
    def from_stats(cls, stats: SessionStats) -> "SessionStatsResponse":
        return cls(**stats.to_dict())


class PlatformAvailability(BaseModel):
    """Session availability for one platform."""

    platform: str
    hasSession: bool
    sessionAvailable: bool
    currentSessionId: Optional[str] = None
    sessionId: Optional[str] = None
    cookieName: Optional[str] = None
    message: str

    @classmethod
    def build(
        cls,
        platform: str,
        latest: Optional[SessionInfo],
        cookie_session: Optional[PlatformCookieInfo] = None,
        cookie_auth: bool = False,
    ) -> "PlatformAvailability":
        has_session = latest is not None
        available = cookie_session is not None if cookie_auth else has_session
        current = cookie_session.internal_id if cookie_session else (latest.internal_id if latest else None)

        if has_session:
            message = f"{platform} session available - all operations should work automatically"
        else:
            message = f"No {platform} session found - please use browser extension to capture session"

        return cls(
            platform=platform,
            hasSession=has_session,
            sessionAvailable=available,
            currentSessionId=current,
            sessionId=latest.session_data.session_id if latest and not cookie_auth else None,
            cookieName=cookie_session.key if cookie_session else None,
            message=message,
        )


class CurrentSessionsResponse(BaseModel):
    """Availability across platforms."""

    hasSession: bool
    sessionAvailable: bool
    sessionStats: SessionStatsResponse
    platforms: Dict[str, PlatformAvailability]


class CaptureSessionResponse(BaseModel):
    """Result of storing a captured session."""

    platform: str
    internalId: str


class HealthResponse(BaseModel):
    """Service health."""

    status: str
    cacheAgeSeconds: Optional[float] = None
    cacheLoads: int = 0


__all__ = [
    "CaptureSessionRequest",
    "CaptureSessionResponse",
    "CurrentSessionsResponse",
    "HealthResponse",
    "PlatformAvailability",
    "SessionInfoResponse",
    "SessionStatsResponse",
]
