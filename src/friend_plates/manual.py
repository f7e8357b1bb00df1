from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Iterable, List, Optional, Set

from .models import ManualEntry
from .name_utils import name_key, normalize_name
from .tables import INVALID_LOCATION_IDS, LocationTable

logger = logging.getLogger("friend_plates_manual")


class ManualAddResult(str, Enum):
    ADDED = "ADDED"
    EMPTY_NAME = "EMPTY_NAME"
    EMPTY_LOCATION = "EMPTY_LOCATION"
    UNKNOWN_LOCATION = "UNKNOWN_LOCATION"
    DUPLICATE = "DUPLICATE"

    def message(self, location_label: str = "") -> str:
        if self is ManualAddResult.EMPTY_NAME:
            return "Enter a character name."
        if self is ManualAddResult.EMPTY_LOCATION:
            return "Enter a location name."
        if self is ManualAddResult.UNKNOWN_LOCATION:
            return f"Unknown location: {location_label}"
        if self is ManualAddResult.DUPLICATE:
            return "Entry already exists."
        return ""


class ManualFriendList:
    """Operator-curated (name, location) pairs that always count as friends."""

    def __init__(self) -> None:
        self._entries: List[ManualEntry] = []

    def add_by_label(self, name: str, location_label: str, locations: LocationTable) -> ManualAddResult:
        cleaned = normalize_name(name)
        label = normalize_name(location_label)
        if not cleaned:
            return ManualAddResult.EMPTY_NAME
        if not label:
            return ManualAddResult.EMPTY_LOCATION
        location_id = locations.resolve(label)
        if not location_id:
            return ManualAddResult.UNKNOWN_LOCATION
        return self.add(cleaned, location_id, locations)

    def add(self, name: str, location_id: int, locations: Optional[LocationTable] = None) -> ManualAddResult:
        cleaned = normalize_name(name)
        if not cleaned:
            return ManualAddResult.EMPTY_NAME
        location_id = int(location_id or 0)
        if location_id in INVALID_LOCATION_IDS:
            return ManualAddResult.EMPTY_LOCATION
        if locations is not None and len(locations) and not locations.is_valid(location_id):
            return ManualAddResult.UNKNOWN_LOCATION
        if self.contains(cleaned, location_id):
            return ManualAddResult.DUPLICATE
        self._entries.append(ManualEntry(name=cleaned, location_id=location_id))
        logger.info("Added manual friend %s (location %d)", cleaned, location_id)
        return ManualAddResult.ADDED

    def remove(self, name: str, location_id: int) -> bool:
        key = name_key(name)
        before = len(self._entries)
        self._entries = [
            entry
            for entry in self._entries
            if not (entry.location_id == location_id and name_key(entry.name) == key)
        ]
        return len(self._entries) != before

    def contains(self, name: str, location_id: int) -> bool:
        key = name_key(name)
        if not key:
            return False
        for entry in self._entries:
            if entry.location_id == location_id and name_key(entry.name) == key:
                return True
        return False

    def clean(self, locations: Optional[LocationTable] = None) -> int:
        """Drop entries with a blank name or a location that no longer resolves.

        When the table is empty (not loaded yet) only the sentinel ids are
        treated as invalid.
        """
        validate = locations is not None and len(locations) > 0

        def is_invalid(entry: ManualEntry) -> bool:
            if not normalize_name(entry.name):
                return True
            if entry.location_id in INVALID_LOCATION_IDS:
                return True
            if validate and not locations.is_valid(entry.location_id):
                return True
            return False

        before = len(self._entries)
        self._entries = [entry for entry in self._entries if not is_invalid(entry)]
        removed = before - len(self._entries)
        if removed:
            logger.info("Removed %d invalid manual friend entries", removed)
        return removed

    def entries(self) -> List[ManualEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def snapshot(self) -> List[dict]:
        return [entry.to_dict() for entry in self._entries]

    def restore(self, rows: Iterable[Any]) -> None:
        self._entries = []
        for raw in rows or []:
            if not isinstance(raw, dict):
                continue
            try:
                location_id = int(raw.get("location_id", 0) or 0)
            except (TypeError, ValueError):
                continue
            name = normalize_name(str(raw.get("name", "") or ""))
            if not name or self.contains(name, location_id):
                continue
            self._entries.append(ManualEntry(name=name, location_id=location_id))


class AllowList:
    """Stable ids confirmed as friends by the operator."""

    def __init__(self, ids: Optional[Iterable[int]] = None) -> None:
        self._ids: Set[int] = {int(value) for value in (ids or []) if int(value)}

    def add(self, stable_id: int) -> bool:
        stable_id = int(stable_id or 0)
        if not stable_id or stable_id in self._ids:
            return False
        self._ids.add(stable_id)
        return True

    def remove(self, stable_id: int) -> bool:
        if stable_id not in self._ids:
            return False
        self._ids.discard(stable_id)
        return True

    def __contains__(self, stable_id: object) -> bool:
        return stable_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def snapshot(self) -> List[int]:
        return sorted(self._ids)

    def restore(self, ids: Iterable[Any]) -> None:
        restored: Set[int] = set()
        for value in ids or []:
            try:
                stable_id = int(value)
            except (TypeError, ValueError):
                continue
            if stable_id:
                restored.add(stable_id)
        self._ids = restored
