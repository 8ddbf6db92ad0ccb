"""Time-bounded cache of parsed sheet reads."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass
class CacheEntry:
    """Rows read from one sheet and when they were stored."""

    rows: list[Any]
    stored_at: float


class SheetCache:
    """Sheet name -> rows, expiring after a fixed TTL.

    Only the gateway writes to it. Single event loop, so no locking; add a
    lock around mutation before sharing it across threads.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, sheet: str) -> list[Any] | None:
        """Return a copy of the cached rows, or None when absent or stale."""
        entry = self._entries.get(sheet)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self.ttl_seconds:
            del self._entries[sheet]
            return None
        return list(entry.rows)

    def put(self, sheet: str, rows: list[Any]) -> None:
        self._entries[sheet] = CacheEntry(rows=list(rows), stored_at=self._clock())

    def invalidate(self, sheet: str) -> bool:
        """Drop one sheet. Returns whether anything was cached."""
        return self._entries.pop(sheet, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def cached_sheets(self) -> list[str]:
        return sorted(self._entries)
