"""Tracks build refs that have already been counted."""

from __future__ import annotations

import threading
from collections.abc import Iterable

from .schemas import BuildHistoryRecord


class SeenRefs:
    """Grow-only set of build refs.

    BuildKit's history window evicts old records on its own, so the same ref
    shows up in several consecutive scrapes and then disappears. Remembering
    every ref for the life of the process keeps the build counters moving
    forward only. Entries are never evicted.

    The lock is only held for in-memory set operations; callers collect the
    remote records first and filter afterwards.
    """

    def __init__(self) -> None:
        self._refs: set[str] = set()
        self._lock = threading.Lock()

    def mark_if_new(self, ref: str) -> bool:
        """Record ``ref`` and return True only on its first presentation."""
        with self._lock:
            return self._insert(ref)

    def filter_new(self, records: Iterable[BuildHistoryRecord]) -> list[BuildHistoryRecord]:
        """Return the records whose ref was not seen before, marking them seen."""
        with self._lock:
            return [record for record in records if self._insert(record.ref)]

    def forget(self, refs: Iterable[str]) -> None:
        """Drop refs whose builds were filtered in but never made it into the counters."""
        with self._lock:
            self._refs.difference_update(refs)

    def _insert(self, ref: str) -> bool:
        if ref in self._refs:
            return False
        self._refs.add(ref)
        return True

    def __contains__(self, ref: object) -> bool:
        with self._lock:
            return ref in self._refs

    def __len__(self) -> int:
        with self._lock:
            return len(self._refs)
