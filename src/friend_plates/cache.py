from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from .models import CacheEntry
from .name_utils import name_key, normalize_name
from .tables import INVALID_LOCATION_IDS

logger = logging.getLogger("friend_plates_cache")

SECONDS_PER_DAY = 86400
DEFAULT_TTL_DAYS = 90
MIN_TTL_DAYS = 7


def effective_ttl_days(ttl_days: int) -> int:
    """Clamp a configured TTL: non-positive means the default, never below the minimum."""
    days = DEFAULT_TTL_DAYS if int(ttl_days) <= 0 else int(ttl_days)
    return max(MIN_TTL_DAYS, days)


class FriendCache:
    """Ordered friend cache keyed by stable id, else by name + location.

    Entries with a stable id are unique per id. Entries without one are
    unique per (lower-cased name, location id). A location id of 0 means the
    location is unknown; such entries can later be upgraded in place.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        touch_coalesce_seconds: float = 60.0,
    ) -> None:
        self._clock = clock
        self._touch_coalesce_seconds = float(touch_coalesce_seconds)
        self._entries: List[CacheEntry] = []

    def add_or_touch(self, name: str, location_id: int = 0, stable_id: int = 0) -> bool:
        """Record a sighting. Returns True only when a new identity was stored.

        A location-less entry receiving its first known location also counts
        as new. Repeat sightings only touch ``last_seen``.
        """
        cleaned = normalize_name(name)
        if not cleaned:
            return False
        location_id = _known_location(location_id)
        stable_id = int(stable_id or 0)
        now = self._now()

        if stable_id:
            existing = self.find_by_stable_id(stable_id)
            if existing is not None:
                if existing.name != cleaned:
                    existing.name = cleaned
                if not existing.location_id and location_id:
                    existing.location_id = location_id
                self._touch(existing, now)
                return False
            self._entries.append(
                CacheEntry(stable_id=stable_id, name=cleaned, location_id=location_id, last_seen=now)
            )
            return True

        key = name_key(cleaned)
        exact = self._find_idless(key, location_id)
        if exact is not None:
            self._touch(exact, now)
            return False

        if not location_id:
            if any(entry.location_id and name_key(entry.name) == key for entry in self._entries):
                # A located entry for this name already exists; the location-less
                # sighting adds nothing and is dropped.
                return False
        else:
            unlocated = self._find_idless(key, 0)
            if unlocated is not None:
                unlocated.location_id = location_id
                unlocated.last_seen = max(unlocated.last_seen, now)
                return True

        self._entries.append(CacheEntry(stable_id=0, name=cleaned, location_id=location_id, last_seen=now))
        return True

    def trim(self, ttl_days: int) -> int:
        days = effective_ttl_days(ttl_days)
        max_age = days * SECONDS_PER_DAY
        now = self._now()
        before = len(self._entries)
        self._entries = [
            entry
            for entry in self._entries
            if entry.last_seen > 0 and normalize_name(entry.name) and now - entry.last_seen <= max_age
        ]
        removed = before - len(self._entries)
        if removed:
            logger.info("Trimmed %d friend cache entries older than %d days", removed, days)
        return removed

    def find_by_stable_id(self, stable_id: int) -> Optional[CacheEntry]:
        if not stable_id:
            return None
        for entry in self._entries:
            if entry.stable_id == stable_id:
                return entry
        return None

    def find_by_name_location(self, name: str, location_id: int = 0) -> Optional[CacheEntry]:
        """Find an entry by name; a location id of 0 on either side matches any."""
        key = name_key(name)
        if not key:
            return None
        location_id = _known_location(location_id)
        for entry in self._entries:
            if name_key(entry.name) != key:
                continue
            if not entry.location_id or not location_id or entry.location_id == location_id:
                return entry
        return None

    def clear(self) -> int:
        removed = len(self._entries)
        self._entries = []
        return removed

    def entries(self) -> List[CacheEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def snapshot(self) -> List[Dict[str, Any]]:
        return [entry.to_dict() for entry in self._entries]

    def restore(self, rows: Iterable[Any]) -> None:
        """Load persisted rows, skipping malformed ones and collapsing duplicates.

        When two rows share a key the one seen most recently wins.
        """
        restored: List[CacheEntry] = []
        by_stable_id: Dict[int, CacheEntry] = {}
        by_name_location: Dict[tuple, CacheEntry] = {}
        for raw in rows or []:
            entry = _entry_from_dict(raw)
            if entry is None:
                continue
            if entry.stable_id:
                previous = by_stable_id.get(entry.stable_id)
                if previous is not None:
                    if entry.last_seen > previous.last_seen:
                        previous.name = entry.name
                        previous.location_id = entry.location_id or previous.location_id
                        previous.last_seen = entry.last_seen
                    continue
                by_stable_id[entry.stable_id] = entry
            else:
                key = (name_key(entry.name), entry.location_id)
                previous = by_name_location.get(key)
                if previous is not None:
                    previous.last_seen = max(previous.last_seen, entry.last_seen)
                    continue
                by_name_location[key] = entry
            restored.append(entry)
        self._entries = restored

    def _find_idless(self, key: str, location_id: int) -> Optional[CacheEntry]:
        for entry in self._entries:
            if entry.stable_id or entry.location_id != location_id:
                continue
            if name_key(entry.name) == key:
                return entry
        return None

    def _touch(self, entry: CacheEntry, now: int) -> None:
        if now - entry.last_seen > self._touch_coalesce_seconds:
            entry.last_seen = now

    def _now(self) -> int:
        return int(self._clock())


def _known_location(location_id: Any) -> int:
    """Location id with the sentinel values folded to 0 (unknown)."""
    location_id = int(location_id or 0)
    return 0 if location_id in INVALID_LOCATION_IDS else location_id


def _entry_from_dict(raw: Any) -> Optional[CacheEntry]:
    if not isinstance(raw, dict):
        return None
    try:
        entry = CacheEntry(
            stable_id=int(raw.get("stable_id", 0) or 0),
            name=normalize_name(str(raw.get("name", "") or "")),
            location_id=_known_location(raw.get("location_id", 0)),
            last_seen=int(raw.get("last_seen", 0) or 0),
        )
    except (TypeError, ValueError):
        return None
    if not entry.name:
        return None
    return entry
