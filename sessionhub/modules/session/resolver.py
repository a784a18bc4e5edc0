import logging
from typing import List, Optional

from .cache import SessionCache, Snapshot
from .extractor import extract_platform_sessions
from .models import (
    Platform,
    PlatformCookieInfo,
    Resolution,
    SessionInfo,
    SessionStats,
    UserCredentials,
)
from .selector import find_cookie_field, select_all, select_latest

logger = logging.getLogger(__name__)


class SessionResolver:
    """
    Resolve which stored session to use right now.

    Every public method fails soft: store outages and malformed data
    yield None or an empty collection instead of raising. Use
    resolve_latest() when an outage must be told apart from "no session".
    """

    def __init__(self, cache: SessionCache):
        """
        Initialize session resolver.

        Args:
            cache: Session cache owning the snapshot and reload coordination
        """
        self.cache = cache

    def invalidate_cache(self) -> None:
        """Invalidate cached sessions (call after writing to the store)."""
        self.cache.invalidate()

    async def resolve_latest(
        self, platform: str, credentials: Optional[UserCredentials] = None
    ) -> Resolution:
        """
        Resolve the most recent valid session for a platform.

        Args:
            platform: Platform name (e.g. 'marketinout', 'tradingview')
            credentials: Optional user filter

        Returns:
            Resolution with status FOUND, EMPTY or STORE_ERROR
        """
        try:
            snapshot = await self.cache.get_snapshot()
            if not snapshot.ok:
                return Resolution.store_error(snapshot.error)

            latest = select_latest(
                extract_platform_sessions(snapshot.data, platform, credentials)
            )
        except Exception as e:
            user_context = " for user" if credentials else ""
            logger.warning(f"Failed to resolve {platform} session{user_context}: {e}")
            return Resolution.store_error(e)

        if latest is None:
            return Resolution.empty()
        return Resolution.found(latest.to_info())

    async def get_latest_session(self, platform: str) -> Optional[SessionInfo]:
        """Most recent valid session for a platform, or None."""
        resolution = await self.resolve_latest(platform)
        return resolution.session

    async def get_latest_session_for_user(
        self, platform: str, credentials: UserCredentials
    ) -> Optional[SessionInfo]:
        """Most recent valid session owned by the given user, or None."""
        resolution = await self.resolve_latest(platform, credentials)
        return resolution.session

    async def get_all_sessions(self, platform: str) -> List[SessionInfo]:
        """
        Get every valid session for a platform, most recent first.

        Used for fallback when the latest session is rejected upstream.
        """
        try:
            snapshot = await self.cache.get_snapshot()
            candidates = extract_platform_sessions(snapshot.data, platform)
            return [candidate.to_info() for candidate in select_all(candidates)]
        except Exception as e:
            logger.warning(f"Failed to list {platform} sessions: {e}")
            return []

    async def has_sessions_for_platform(self, platform: str) -> bool:
        return await self.get_latest_session(platform) is not None

    async def has_sessions_for_platform_and_user(
        self, platform: str, credentials: UserCredentials
    ) -> bool:
        return await self.get_latest_session_for_user(platform, credentials) is not None

    async def get_latest_cookie_session(
        self, platform: str, credentials: Optional[UserCredentials] = None
    ) -> Optional[PlatformCookieInfo]:
        """
        Get the most recent session of a cookie-authenticated platform.

        Returns:
            Session with its resolved cookie name/value, or None if no
            session exists or the latest one carries no cookie field
        """
        resolution = await self.resolve_latest(platform, credentials)
        if not resolution.is_found:
            return None

        cookie = find_cookie_field(resolution.session.session_data)
        if cookie is None:
            return None
        return PlatformCookieInfo.from_session(resolution.session, cookie)

    async def get_latest_mio_session(self) -> Optional[PlatformCookieInfo]:
        """Most recent MarketInOut session with its ASPSESSIONID cookie."""
        return await self.get_latest_cookie_session(Platform.MARKETINOUT.value)

    async def get_latest_mio_session_for_user(
        self, credentials: UserCredentials
    ) -> Optional[PlatformCookieInfo]:
        return await self.get_latest_cookie_session(Platform.MARKETINOUT.value, credentials)

    async def get_latest_tv_session(
        self, credentials: Optional[UserCredentials] = None
    ) -> Optional[SessionInfo]:
        """Most recent TradingView session; its sessionId is the auth token."""
        resolution = await self.resolve_latest(Platform.TRADINGVIEW.value, credentials)
        return resolution.session

    async def get_session_stats(self) -> SessionStats:
        """
        Get session statistics for monitoring.

        Returns:
            Number of internal ids and, per platform, how many internal ids
            hold an entry for it
        """
        try:
            snapshot = await self.cache.get_snapshot()
            return self._count_sessions(snapshot)
        except Exception as e:
            logger.warning(f"Failed to compute session stats: {e}")
            return SessionStats()

    async def get_available_users(self) -> List[str]:
        """Distinct user emails seen across all platforms, sorted."""
        try:
            snapshot = await self.cache.get_snapshot()
            emails = set()
            for platform_sessions in snapshot.data.values():
                if not isinstance(platform_sessions, dict):
                    continue
                for record in platform_sessions.values():
                    email = record.get("userEmail") if isinstance(record, dict) else None
                    if isinstance(email, str) and email:
                        emails.add(email)
            return sorted(emails)
        except Exception as e:
            logger.warning(f"Failed to list session users: {e}")
            return []

    @staticmethod
    def _count_sessions(snapshot: Snapshot) -> SessionStats:
        stats = SessionStats()
        for platform_sessions in snapshot.data.values():
            if not isinstance(platform_sessions, dict):
                continue
            stats.total_sessions += 1
            for platform in platform_sessions:
                stats.platform_counts[platform] = stats.platform_counts.get(platform, 0) + 1
        return stats
