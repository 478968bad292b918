"""Cached, stateful reads that views consume.

A ``ResourceQuery`` ties a cache key, a fetch function and a TTL together and
exposes ``data`` / ``loading`` / ``error`` plus ``refetch``. States move
``idle -> loading -> success | failure``; ``refetch`` re-enters ``loading``
from either terminal state.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, Optional, TypeVar

from ..cache.data_cache import DataCache
from ..core.enums import QueryStatus

T = TypeVar("T")

logger = logging.getLogger(__name__)

_MISSING = object()


class ResourceQuery(Generic[T]):
    def __init__(
        self,
        key: str,
        fetcher: Callable[[], T],
        *,
        cache: DataCache,
        ttl: Optional[float] = None,
        enabled: bool = True,
    ):
        self.key = key
        self.ttl = ttl
        self.enabled = bool(enabled)
        self._fetcher = fetcher
        self._cache = cache

        self.status = QueryStatus.IDLE
        self.data: Optional[T] = None
        self.error: Optional[BaseException] = None

        self._generation = 0
        self._disposed = False
        self._lock = threading.Lock()

    @property
    def loading(self) -> bool:
        return self.enabled and self.status in (QueryStatus.IDLE, QueryStatus.LOADING)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def load(self) -> "ResourceQuery[T]":
        """Mount step: serve a live cache entry, otherwise fetch."""

        if not self.enabled or self._disposed:
            return self

        cached = self._cache.get(self.key, _MISSING)
        if cached is not _MISSING:
            self.status = QueryStatus.SUCCESS
            self.data = cached
            self.error = None
            return self

        return self._fetch()

    def refetch(self) -> "ResourceQuery[T]":
        """Re-run the fetcher, skipping the cache read but writing the result back."""

        if not self.enabled or self._disposed:
            return self
        return self._fetch()

    def dispose(self) -> None:
        """Unmount: results that arrive afterwards are dropped."""
        self._disposed = True

    def _fetch(self) -> "ResourceQuery[T]":
        with self._lock:
            self._generation += 1
            generation = self._generation
            self.status = QueryStatus.LOADING
            self.error = None

        try:
            result = self._fetcher()
        except Exception as exc:
            if self._is_current(generation):
                logger.warning("query %s failed: %s", self.key, exc)
                self.status = QueryStatus.FAILURE
                self.error = exc
            return self

        if self._is_current(generation):
            self._cache.set(self.key, result, self.ttl)
            self.data = result
            self.status = QueryStatus.SUCCESS
        return self

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return not self._disposed and generation == self._generation

