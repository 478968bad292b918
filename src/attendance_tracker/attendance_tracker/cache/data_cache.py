"""Process-wide in-memory cache with per-entry TTL.

Reads expire stale entries lazily; writes always overwrite. Backing-store
errors never reach this layer, so nothing here raises during normal use.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..core.constants import DEFAULT_CACHE_TTL


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: float
    ttl: float

    def is_live(self, now: float) -> bool:
        return now - self.stored_at <= self.ttl


class DataCache:
    """Keyed store of time-bounded values, shared by all resource queries.

    One lock guards the map, so the read-and-evict step of ``get`` is atomic.
    """

    def __init__(self, *, default_ttl: float = DEFAULT_CACHE_TTL, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self.default_ttl = float(default_ttl)

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        # a missing or zero ttl means the default
        entry = CacheEntry(
            value=value,
            stored_at=self._clock(),
            ttl=float(ttl or self.default_ttl),
        )
        with self._lock:
            self._entries[key] = entry

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if not entry.is_live(self._clock()):
                del self._entries[key]
                return default
            return entry.value

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def clear_by_prefix(self, fragment: str) -> int:
        """Drop every entry whose key *contains* ``fragment``.

        Matching is by substring so a user id scopes out all of that user's
        keys regardless of which resource segment it appears in.
        """

        with self._lock:
            doomed = [k for k in self._entries if fragment in k]
            for k in doomed:
                del self._entries[k]
        return len(doomed)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


data_cache = DataCache()
