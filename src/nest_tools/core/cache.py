"""In-memory TTL cache for aggregation results."""

import asyncio
import time
from typing import Any, Callable, Hashable, Optional


class ResultCache:
    """Cache of results keyed by query, shared by concurrent tool calls.

    Entries expire ``ttl_seconds`` after they were stored and are evicted
    on read and on every write.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, Any]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached value or None when absent or expired."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            stored_at, value = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return value

    async def set(self, key: Hashable, value: Any) -> None:
        """Store a value, dropping every expired entry first."""
        async with self._lock:
            now = self._clock()
            expired = [
                stored_key
                for stored_key, (stored_at, _) in self._entries.items()
                if now - stored_at >= self.ttl_seconds
            ]
            for stored_key in expired:
                del self._entries[stored_key]

            self._entries[key] = (now, value)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
