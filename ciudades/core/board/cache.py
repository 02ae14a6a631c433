"""In-process get-or-compute cache with TTL and tag invalidation.

Expired and invalidated entries are kept around: when the producer fails,
the last good value is served instead of an error.  Concurrent misses for the
same key wait on one producer call.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Hashable, Iterable
from dataclasses import dataclass
from typing import Any, TypeVar

from ciudades.common.logging import get_logger
from ciudades.core.board.schemas import PipelineConfig

logger = get_logger("board.cache")

T = TypeVar("T")

DASHBOARD_TAG = "trello-dashboard"


def cache_key(config: PipelineConfig) -> tuple[str, ...]:
    return (
        DASHBOARD_TAG,
        config.board_id,
        config.city_mode.value,
        config.city_field_name,
        str(config.upcoming_days),
    )


@dataclass(slots=True)
class _Entry:
    value: Any
    expires_at: float
    tags: frozenset[str]


class SnapshotCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[Hashable, _Entry] = {}
        self._locks: dict[Hashable, asyncio.Lock] = {}

    def _fresh(self, entry: _Entry | None) -> bool:
        return entry is not None and entry.expires_at > self._clock()

    async def get_or_compute(
        self,
        key: Hashable,
        producer: Callable[[], Awaitable[T]],
        ttl: float,
        tags: Iterable[str] = (),
    ) -> T:
        entry = self._entries.get(key)
        if self._fresh(entry):
            logger.debug("Cache hit for %s", key)
            return entry.value

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            entry = self._entries.get(key)
            if self._fresh(entry):
                return entry.value

            logger.debug("Cache miss for %s", key)
            try:
                value = await producer()
            except Exception as e:
                if entry is None:
                    raise
                logger.warning("Refresh failed for %s, serving stale value: %s", key, e)
                return entry.value

            self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl, tags=frozenset(tags))
            return value

    def peek(self, key: Hashable) -> Any | None:
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def invalidate_tag(self, tag: str) -> int:
        """Mark every entry carrying ``tag`` as expired; returns how many."""
        count = 0
        for entry in self._entries.values():
            if tag in entry.tags:
                entry.expires_at = float("-inf")
                count += 1
        logger.info("Invalidated %d cache entries tagged %s", count, tag)
        return count
