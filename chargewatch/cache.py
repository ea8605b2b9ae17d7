from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .config import CACHE_TTL_SEC
from .models import ChargerRecord


@dataclass
class CacheEntry:
    record: ChargerRecord
    cached_at: float


class RecordCache:
    """Per-charger record cache with a fixed time-to-live.

    Stale entries are dropped when read; there is no background eviction.
    """

    def __init__(self, ttl: float = CACHE_TTL_SEC, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, charger_id: str) -> Optional[ChargerRecord]:
        entry = self._entries.get(charger_id)
        if entry is None:
            return None
        if self._clock() - entry.cached_at >= self.ttl:
            self._entries.pop(charger_id, None)
            return None
        return entry.record

    def put(self, charger_id: str, record: ChargerRecord) -> None:
        self._entries[charger_id] = CacheEntry(record=record, cached_at=self._clock())

    def invalidate(self, charger_id: str) -> None:
        self._entries.pop(charger_id, None)

    def __contains__(self, charger_id: str) -> bool:
        return self.get(charger_id) is not None
