"""
API Module - Black Box Interface

Purpose: HTTP request/response contracts
Interface: Pydantic models used by the REST endpoints
Hidden: Conversion from session module types

The API module only orchestrates - it contains no business logic.
All logic is delegated to appropriate modules.
"""

from .models import (
    CaptureSessionRequest,
    CaptureSessionResponse,
    CurrentSessionsResponse,
    HealthResponse,
    PlatformAvailability,
    SessionInfoResponse,
    SessionStatsResponse,
)

__all__ = [
    "CaptureSessionRequest",
    "CaptureSessionResponse",
    "CurrentSessionsResponse",
    "HealthResponse",
    "PlatformAvailability",
    "SessionInfoResponse",
    "SessionStatsResponse",
]
