"""In-memory cache with a time-to-live.

Built by whoever needs it and handed to the consumer. There is no
module-level cache instance, and the clock is injectable so expiry can be
tested without sleeping.
"""

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any


class TTLCache:
    """Entries expire ``ttl_seconds`` after they were written.

    Once ``max_size`` is reached the least recently used entry is evicted.
    """

    def __init__(self, ttl_seconds: float, max_size: int = 1000, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return default
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            elif len(self._entries) >= self._max_size:
                self._entries.popitem(last=False)
            self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        """Return the cached value, or call ``loader`` and cache what it returns.

        Exceptions from ``loader`` propagate and nothing is cached.
        """
        missing = object()
        value = self.get(key, missing)
        if value is not missing:
            return value
        value = loader()
        self.set(key, value)
        return value

    def invalidate(self, key: str | None = None) -> None:
        """Drop one key, or everything when no key is given."""
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for expires_at, _ in self._entries.values() if now < expires_at)
