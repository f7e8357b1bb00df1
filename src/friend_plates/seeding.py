from __future__ import annotations

import bisect
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .cache import FriendCache
from .models import Entity, RosterEntry
from .name_utils import looks_like_character_name, name_key, normalize_name
from .tables import LocationTable

logger = logging.getLogger("friend_plates_seeding")

DEFAULT_WINDOW_SIZES: Tuple[int, ...] = (6, 5, 4, 3)
DEFAULT_IGNORED_FRAGMENTS: Tuple[str, ...] = ("Friend List", "Last Online", "Online Status")


def observe_nearby(entities: Iterable[Entity], cache: FriendCache) -> int:
    """Add every visible entity that carries the authoritative friend flag."""
    added = 0
    for entity in entities:
        if not entity.is_friend:
            continue
        if cache.add_or_touch(entity.name, entity.home_location_id, entity.stable_id):
            added += 1
    return added


def seed_from_roster(rows: Optional[Sequence[RosterEntry]], cache: FriendCache) -> int:
    if rows is None:
        logger.debug("Roster not ready")
        return 0
    if not rows:
        logger.debug("Roster empty or still populating")
        return 0
    added = 0
    for index, row in enumerate(rows):
        try:
            name = normalize_name(row.name)
            if not name:
                continue
            if cache.add_or_touch(name, row.best_location_id(), row.stable_id):
                added += 1
        except (AttributeError, TypeError, ValueError) as exc:
            logger.debug("Roster row %d skipped: %s: %s", index, exc.__class__.__name__, exc)
    logger.debug("Added %d from roster (count=%d)", added, len(rows))
    return added


def extract_candidates(
    fragments: Sequence[str],
    locations: LocationTable,
    window_sizes: Sequence[int] = DEFAULT_WINDOW_SIZES,
    ignored: Iterable[str] = DEFAULT_IGNORED_FRAGMENTS,
) -> List[Tuple[str, int]]:
    """Pair name-like fragments with location fragments from a scraped list.

    ``fragments`` are the text nodes of the social list in on-screen order.
    Windows of each size slide over the sequence; inside a window the first
    name-like fragment is the name and the first location after it is its
    location. Seeing a second name before any location ends the window, as
    does finding both. Name-only candidates are kept with location 0.
    Header and status text listed in ``ignored`` is never taken as a name.
    """
    cleaned = [normalize_name(fragment) for fragment in fragments or []]
    stop = {name_key(text) for text in ignored or ()}
    kinds: List[Tuple[str, int]] = []
    for text in cleaned:
        location_id = locations.resolve(text) if text else 0
        if location_id:
            kinds.append(("", location_id))
            continue
        name = looks_like_character_name(text)
        if name_key(name) in stop or name_key(text) in stop:
            name = ""
        kinds.append((name, 0))

    found: Dict[str, Tuple[str, int]] = {}
    order: List[str] = []
    for size in sorted({int(size) for size in window_sizes if int(size) > 0}, reverse=True):
        for start in range(len(kinds)):
            name = ""
            location_id = 0
            for candidate_name, candidate_location in kinds[start : start + size]:
                if not name:
                    if candidate_name:
                        name = candidate_name
                    continue
                if candidate_location:
                    location_id = candidate_location
                    break
                if candidate_name and name_key(candidate_name) != name_key(name):
                    break
            if not name:
                continue
            key = name_key(name)
            if key not in found:
                found[key] = (name, location_id)
                order.append(key)
            elif location_id and not found[key][1]:
                found[key] = (found[key][0], location_id)
    return [found[key] for key in order]


def seed_from_fragments(
    fragments: Sequence[str],
    locations: LocationTable,
    cache: FriendCache,
    window_sizes: Sequence[int] = DEFAULT_WINDOW_SIZES,
    ignored: Iterable[str] = DEFAULT_IGNORED_FRAGMENTS,
) -> int:
    if not fragments:
        logger.debug("Social list surface absent or empty")
        return 0
    added = 0
    candidates = extract_candidates(fragments, locations, window_sizes, ignored)
    for name, location_id in candidates:
        if cache.add_or_touch(name, location_id, 0):
            added += 1
    logger.debug("Added %d from %d scraped candidates", added, len(candidates))
    return added


class SeedScheduler:
    """One-shot seed reads scheduled after the social list opens or refreshes."""

    def __init__(
        self,
        delays: Sequence[float] = (0.35, 8.0),
        debounce_seconds: float = 1.0,
        dedupe_tolerance_seconds: float = 0.3,
        max_per_tick: int = 3,
    ) -> None:
        self._delays = tuple(float(delay) for delay in delays)
        self._debounce_seconds = float(debounce_seconds)
        self._tolerance = float(dedupe_tolerance_seconds)
        self._max_per_tick = max(1, int(max_per_tick))
        self._pending: List[float] = []
        self._last_event: Optional[float] = None

    def notify_surface_event(self, now: float) -> bool:
        """Handle an open/refresh signal; bursts inside the debounce window schedule once."""
        if self._last_event is not None and now - self._last_event <= self._debounce_seconds:
            return False
        self._last_event = now
        for delay in self._delays:
            self.schedule(now + delay)
        return True

    def schedule(self, due: float) -> bool:
        for pending in self._pending:
            if abs(pending - due) <= self._tolerance:
                return False
        bisect.insort(self._pending, due)
        return True

    def pop_due(self, now: float) -> List[float]:
        due: List[float] = []
        while self._pending and self._pending[0] <= now and len(due) < self._max_per_tick:
            due.append(self._pending.pop(0))
        return due

    def pending(self) -> List[float]:
        return list(self._pending)

    def clear(self) -> None:
        self._pending = []
