import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from .models import StoredSessions

logger = logging.getLogger(__name__)

SessionLoader = Callable[[], Awaitable[StoredSessions]]


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time view of every stored session."""

    data: StoredSessions = field(default_factory=dict)
    timestamp: float = 0.0
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SessionCache:
    def __init__(
        self,
        loader: SessionLoader,
        ttl: float = 15.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize session cache.

        Args:
            loader: Async callable returning the full session snapshot
            ttl: Seconds a loaded snapshot stays fresh (15 seconds)
            clock: Monotonic time source
        """
        self.loader = loader
        self.ttl = ttl
        self.clock = clock
        self.load_count = 0

        self._snapshot: Optional[Snapshot] = None
        self._pending: Optional[asyncio.Task] = None
        self._pending_generation = 0
        self._generation = 0

    def is_fresh(self) -> bool:
        """Check if the cached snapshot can be served without I/O."""
        if self._snapshot is None:
            return False
        return (self.clock() - self._snapshot.timestamp) < self.ttl

    def age(self) -> Optional[float]:
        """Seconds since the cached snapshot was loaded, None when empty."""
        if self._snapshot is None:
            return None
        return self.clock() - self._snapshot.timestamp

    @property
    def is_loading(self) -> bool:
        return self._pending is not None

    async def get_snapshot(self) -> Snapshot:
        """
        Get a snapshot that is fresh enough.

        Returns:
            The cached snapshot while fresh, otherwise the result of a reload.
            A failed reload yields an empty snapshot carrying the error.

        Logic:
        1. Serve the cached snapshot if younger than the TTL
        2. Attach to the in-flight reload if one exists
        3. Otherwise start one reload shared by every concurrent caller

        A reload started before the last invalidate() is allowed to settle
        before a new one starts, so only one store read is ever in flight.
        Waiters are shielded: a cancelled caller never cancels the shared reload.
        """
        while True:
            if self.is_fresh():
                return self._snapshot

            pending = self._pending
            if pending is None:
                return await asyncio.shield(self._start_reload())
            if self._pending_generation == self._generation:
                return await asyncio.shield(pending)

            await asyncio.wait({pending})

    def invalidate(self) -> None:
        """
        Drop the cached snapshot.

        Called by anything that writes to the backing store. A reload that
        is already running still answers its waiters but is not cached.
        """
        self._snapshot = None
        self._generation += 1
        logger.debug("Session cache invalidated")

    def _start_reload(self) -> asyncio.Task:
        generation = self._generation
        task = asyncio.ensure_future(self._reload(generation))
        self._pending = task
        self._pending_generation = generation
        return task

    async def _reload(self, generation: int) -> Snapshot:
        """Read the backing store once and commit the result."""
        self.load_count += 1
        try:
            data = await self.loader()
            if not isinstance(data, dict):
                raise TypeError(f"Session store returned {type(data).__name__}, expected dict")
        except Exception as e:
            logger.warning(f"Failed to load sessions from store: {e}")
            return Snapshot(data={}, timestamp=self.clock(), error=e)
        finally:
            if self._pending is asyncio.current_task():
                self._pending = None

        snapshot = Snapshot(data=data, timestamp=self.clock())
        if generation == self._generation:
            self._snapshot = snapshot
            logger.debug(f"Session cache reloaded with {len(data)} internal ids")
        return snapshot
