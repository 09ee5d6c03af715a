"""Bounded response cache with per-read TTL checks."""
from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

DEFAULT_TTL = 60.0
DEFAULT_MAX_ENTRIES = 256


@dataclass
class CacheEntry:
    data: Any
    timestamp: float


class TTLCache:
    """
    Mapping of request key -> payload.

    - Time-based validity checked on read (``DEFAULT_TTL`` seconds unless the
      caller passes its own ``ttl``). Stale entries are not removed by ``get``
      because a caller with a longer ttl may still accept them.
    - LRU eviction once ``max_entries`` is exceeded.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl = ttl
        self.max_entries = max_entries
        self.clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str, ttl: Optional[float] = None) -> Any:
        """Return the cached payload, or ``None`` if missing or expired."""
        limit = self.ttl if ttl is None else ttl
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self.clock() - entry.timestamp >= limit:
                return None
            self._entries.move_to_end(key)
            return entry.data

    def set(self, key: str, data: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(data=data, timestamp=self.clock())
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def invalidate(self, match: Union[str, Callable[[str], bool]]) -> int:
        """Drop keys containing ``match`` (or satisfying it, if callable)."""
        test = match if callable(match) else (lambda k: match in k)
        with self._lock:
            doomed = [k for k in self._entries if test(k)]
            for k in doomed:
                del self._entries[k]
        return len(doomed)

    def prune(self) -> int:
        """Remove entries stale under the default ttl."""
        now = self.clock()
        return self.invalidate(
            lambda k: now - self._entries[k].timestamp >= self.ttl
        )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
