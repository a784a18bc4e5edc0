import hashlib
import json
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class SessionStoreError(Exception):
    """The backing store could not be read or written."""


def generate_deterministic_session_id(user_email: str, user_password: str, platform: str) -> str:
    """
    Derive a stable internal id from user credentials and platform.

    Saving under this id overwrites the user's previous session, keeping one
    session per user per platform.
    """
    source = f"{user_email.lower().strip()}:{user_password}:{platform}"
    digest = hashlib.sha256(source.encode("utf-8")).hexdigest()
    return f"det_{digest[:32]}"


def _stringify(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value if isinstance(value, str) else str(value)


class RedisSessionStore:
    def __init__(
        self,
        redis_client,
        key_prefix: str = "session",
        on_change: Optional[Callable[[], None]] = None,
    ):
        """
        Initialize session store.

        Args:
            redis_client: Async Redis client (decode_responses=True)
            key_prefix: Prefix of session keys ({prefix}:{internal_id}:{platform})
            on_change: Called after every write or delete, typically the
                session cache's invalidate()
        """
        self.redis = redis_client
        self.key_prefix = key_prefix
        self.on_change = on_change

    def _key(self, internal_id: str, platform: str) -> str:
        return f"{self.key_prefix}:{internal_id}:{platform}"

    def _split_key(self, key: str) -> Optional[List[str]]:
        parts = key.split(":")
        if len(parts) != 3 or parts[0] != self.key_prefix:
            return None
        return parts

    def _notify_change(self) -> None:
        if self.on_change:
            self.on_change()

    async def _keys(self, pattern: str) -> List[str]:
        return [key async for key in self.redis.scan_iter(match=pattern)]

    @staticmethod
    def _decode(key: str, data: Any) -> Optional[Dict[str, Any]]:
        """Parse a stored record, tolerating already-decoded values."""
        if isinstance(data, dict):
            return data
        try:
            parsed = json.loads(data)
        except (TypeError, ValueError) as e:
            logger.error(f"Error processing session data for {key}: {e}")
            return None
        if not isinstance(parsed, dict):
            logger.error(f"Unexpected session data type for {key}: {type(parsed).__name__}")
            return None
        return parsed

    async def load_all_sessions(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        """
        Load every stored session.

        Returns:
            Mapping of internal id -> platform -> record fields

        Raises:
            SessionStoreError: If Redis cannot be read
        """
        sessions: Dict[str, Dict[str, Dict[str, Any]]] = {}

        try:
            keys = await self._keys(f"{self.key_prefix}:*")
            for key in keys:
                parts = self._split_key(key)
                if not parts:
                    continue

                data = await self.redis.get(key)
                if not data:
                    continue

                record = self._decode(key, data)
                if record is None:
                    continue

                _, internal_id, platform = parts
                sessions.setdefault(internal_id, {})[platform] = record
        except RedisError as e:
            raise SessionStoreError(f"Failed to load sessions: {e}") from e

        return sessions

    async def get_platform_session(self, internal_id: str, platform: str) -> Optional[Dict[str, Any]]:
        """
        Get one platform's session under an internal id.

        Returns:
            Record fields or None if not found

        Raises:
            SessionStoreError: If Redis is unreachable
        """
        key = self._key(internal_id, platform)
        try:
            data = await self.redis.get(key)
        except RedisError as e:
            raise SessionStoreError(f"Failed to read {key}: {e}") from e

        if not data:
            return None
        return self._decode(key, data)

    async def get_session(self, internal_id: str) -> Optional[Dict[str, Dict[str, Any]]]:
        """Get every platform session stored under an internal id."""
        try:
            keys = await self._keys(f"{self.key_prefix}:{internal_id}:*")
        except RedisError as e:
            raise SessionStoreError(f"Failed to list sessions for {internal_id}: {e}") from e

        sessions = {}
        for key in keys:
            parts = self._split_key(key)
            if not parts:
                continue
            record = await self.get_platform_session(internal_id, parts[2])
            if record is not None:
                sessions[parts[2]] = record
        return sessions or None

    async def save_platform_session(
        self, internal_id: str, platform: str, data: Mapping[str, Any]
    ) -> None:
        """
        Save or replace a platform session.

        Every value is stored as a string; nested objects become JSON text.
        Sessions carry no expiry and persist until deleted.
        """
        sanitized = {"sessionId": _stringify(data.get("sessionId", ""))}
        for field_name, value in data.items():
            if field_name != "sessionId" and value is not None:
                sanitized[field_name] = _stringify(value)

        key = self._key(internal_id, platform)
        try:
            await self.redis.set(key, json.dumps(sanitized))
        except RedisError as e:
            raise SessionStoreError(f"Failed to save {key}: {e}") from e

        self._notify_change()
        logger.info(f"Saved {platform} session: {internal_id}")

    async def update_platform_session(
        self, internal_id: str, platform: str, updates: Mapping[str, Any]
    ) -> None:
        """Merge non-None updates into an existing (or empty) session."""
        existing = await self.get_platform_session(internal_id, platform) or {"sessionId": ""}
        merged = {**existing, **{k: v for k, v in updates.items() if v is not None}}
        await self.save_platform_session(internal_id, platform, merged)

    async def save_platform_session_with_cleanup(
        self, internal_id: str, platform: str, data: Mapping[str, Any]
    ) -> str:
        """
        Save a session, replacing the user's previous one when possible.

        Returns:
            Internal id actually used: deterministic when both userEmail and
            userPassword are present, otherwise the one given
        """
        final_id = internal_id
        user_email = data.get("userEmail")
        user_password = data.get("userPassword")
        if user_email and user_password:
            final_id = generate_deterministic_session_id(user_email, user_password, platform)

        await self.save_platform_session(final_id, platform, data)
        return final_id

    async def delete_platform_session(self, internal_id: str, platform: str) -> bool:
        """
        Delete one platform session.

        Returns:
            True if a session was deleted
        """
        try:
            deleted = await self.redis.delete(self._key(internal_id, platform))
        except RedisError as e:
            raise SessionStoreError(f"Failed to delete {platform} session {internal_id}: {e}") from e

        if deleted:
            self._notify_change()
            logger.info(f"Deleted {platform} session: {internal_id}")
        return bool(deleted)

    async def delete_session(self, internal_id: str) -> int:
        """
        Delete every platform session under an internal id.

        Returns:
            Number of platform sessions deleted
        """
        try:
            keys = await self._keys(f"{self.key_prefix}:{internal_id}:*")
            deleted = await self.redis.delete(*keys) if keys else 0
        except RedisError as e:
            raise SessionStoreError(f"Failed to delete sessions for {internal_id}: {e}") from e

        if deleted:
            self._notify_change()
            logger.info(f"Deleted all sessions for: {internal_id}")
        return deleted
