from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from .cache import RecordCache
from .errors import InputError
from .status import ChargerStatus, UpdatedBy, is_valid_status


@dataclass
class ManualOverrideEntry:
    """A status asserted by a user for one charger."""

    status: str
    set_at: datetime
    source: str = UpdatedBy.USER


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ManualOverrideStore:
    """User-set statuses, kept for the life of the process."""

    def __init__(self, cache: Optional[RecordCache] = None, now: Callable[[], datetime] = _utcnow):
        self._cache = cache
        self._now = now
        self._entries: Dict[str, ManualOverrideEntry] = {}

    def set_status(self, charger_id: str, status: str) -> ManualOverrideEntry:
        if not charger_id:
            raise InputError("Missing chargerId")
        if not is_valid_status(status):
            raise InputError(
                f"Invalid status value '{status}', expected one of {', '.join(ChargerStatus.ALL)}"
            )
        entry = ManualOverrideEntry(status=status, set_at=self._now())
        self._entries[charger_id] = entry
        if self._cache is not None:
            self._cache.invalidate(charger_id)
        logging.info(f"Manual status for {charger_id} set to {status}")
        return entry

    def get_status(self, charger_id: str) -> Optional[ManualOverrideEntry]:
        return self._entries.get(charger_id)

    def all(self) -> Dict[str, ManualOverrideEntry]:
        return dict(self._entries)
