from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from .cache import FriendCache, effective_ttl_days
from .config import CacheConfig, PolicyConfig, SeedingConfig
from .display import decide_display
from .host import HostWorld, SnapshotHost
from .manual import AllowList, ManualAddResult, ManualFriendList
from .models import DisplayTransform, Entity, ManualEntry
from .name_utils import names_equal
from .resolver import IdentityResolver
from .seeding import SeedScheduler, observe_nearby, seed_from_fragments, seed_from_roster
from .state import STATE_VERSION
from .tables import JobTable, LocationTable

logger = logging.getLogger("friend_plates_engine")


class SettingsSink(Protocol):
    def load(self) -> Dict[str, Any]:
        ...

    def save(self, state: Dict[str, Any]) -> None:
        ...


class Engine:
    """Owns the friend cache, curated lists and policy for one client.

    Everything runs on :meth:`tick`, called once per host frame; there is no
    background work and no locking.
    """

    def __init__(
        self,
        host: HostWorld | None = None,
        locations: LocationTable | None = None,
        jobs: JobTable | None = None,
        policy: PolicyConfig | None = None,
        cache_config: CacheConfig | None = None,
        seeding_config: SeedingConfig | None = None,
        settings: SettingsSink | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._host = host or SnapshotHost()
        self._locations = locations or LocationTable()
        self._jobs = jobs or JobTable()
        self._policy = policy or PolicyConfig()
        self._cache_config = cache_config or CacheConfig()
        self._seeding = seeding_config or SeedingConfig()
        self._settings = settings
        self._clock = clock
        self._ttl_days = self._cache_config.ttl_days
        self._show_first_run_notice = True

        self._cache = FriendCache(clock=clock, touch_coalesce_seconds=self._cache_config.touch_coalesce_seconds)
        self._manual = ManualFriendList()
        self._allow_list = AllowList()
        self._resolver = IdentityResolver(self._cache, self._manual, self._allow_list, lambda: self._policy)
        self._scheduler = SeedScheduler(
            delays=self._seeding.seed_delays,
            debounce_seconds=self._seeding.event_debounce_seconds,
            dedupe_tolerance_seconds=self._seeding.dedupe_tolerance_seconds,
            max_per_tick=self._seeding.max_seeds_per_tick,
        )

        self._last_observe: Optional[float] = None
        self._last_roster_poll: Optional[float] = None
        self._last_trim: Optional[float] = None
        self.last_seed_at: Optional[float] = None
        self.last_seed_added = 0

        if self._settings is not None:
            state = self._settings.load()
            if state:
                self.restore_state(state)
        self.clean_manual()

    # -- per-frame driver -------------------------------------------------

    def tick(self, now: float | None = None) -> int:
        """Run due maintenance. Returns the number of new cache entries."""
        now = self._clock() if now is None else now
        added = 0
        dirty = False

        for _due in self._scheduler.pop_due(now):
            try:
                result = self.seed_once(now)
            except Exception as exc:
                logger.debug("Scheduled seed failed: %s: %s", exc.__class__.__name__, exc)
                result = 0
            added += result
            logger.debug("Scheduled seed ran; added %d", result)

        if not self._host.is_competitive():
            if self._is_due(self._last_observe, self._seeding.observe_interval_seconds, now):
                self._last_observe = now
                try:
                    added += observe_nearby(self._host.visible_entities(), self._cache)
                except Exception as exc:
                    logger.debug("Passive observation failed: %s: %s", exc.__class__.__name__, exc)
            poll = self._seeding.roster_poll_seconds
            if poll > 0 and self._is_due(self._last_roster_poll, poll, now):
                self._last_roster_poll = now
                try:
                    added += self.seed_once(now)
                except Exception as exc:
                    logger.debug("Roster poll failed: %s: %s", exc.__class__.__name__, exc)

        if self._is_due(self._last_trim, self._cache_config.trim_interval_seconds, now):
            self._last_trim = now
            dirty = self._cache.trim(self._ttl_days) > 0

        if added or dirty:
            self._save()
        return added

    def notify_social_list_event(self, now: float | None = None) -> bool:
        now = self._clock() if now is None else now
        scheduled = self._scheduler.notify_surface_event(now)
        if scheduled:
            logger.debug("Social list opened/refreshed: scheduled seeds at %s", self._seeding.seed_delays)
        return scheduled

    def seed_once(self, now: float | None = None) -> int:
        """Read the roster when it is ready, otherwise scrape the social list text."""
        roster = self._host.roster()
        if roster is not None:
            added = seed_from_roster(roster, self._cache)
        else:
            fragments = self._host.surface_text(self._seeding.social_list_surface)
            added = seed_from_fragments(
                fragments,
                self._locations,
                self._cache,
                self._seeding.window_sizes,
                self._seeding.ignored_fragments,
            )
        self.last_seed_at = self._clock() if now is None else now
        self.last_seed_added = added
        return added

    def force_seed_now(self) -> Tuple[int, int]:
        try:
            added = self.seed_once()
        except Exception as exc:
            logger.warning("Forced seed failed: %s: %s", exc.__class__.__name__, exc)
            added = 0
        if added:
            self._save()
        return added, len(self._cache)

    # -- resolution and display -------------------------------------------

    def is_recognized_friend(self, entity: Entity, competitive: bool | None = None) -> bool:
        if competitive is None:
            competitive = self._host.is_competitive()
        return self._resolver.is_recognized_friend(entity, competitive)

    def recognition_reason(self, entity: Entity, competitive: bool | None = None) -> Optional[str]:
        if competitive is None:
            competitive = self._host.is_competitive()
        return self._resolver.reason(entity, competitive)

    def decide_display(
        self,
        entity: Entity,
        zone_is_competitive: bool | None = None,
        policy: PolicyConfig | None = None,
    ) -> DisplayTransform:
        competitive = self._host.is_competitive() if zone_is_competitive is None else zone_is_competitive
        policy = policy or self._policy
        recognized = self._resolver.is_recognized_friend(entity, competitive, policy)
        return decide_display(entity, competitive, recognized, policy, self._jobs)

    def decide_visible(self) -> List[Tuple[Entity, DisplayTransform]]:
        competitive = self._host.is_competitive()
        return [(entity, self.decide_display(entity, competitive)) for entity in self._host.visible_entities()]

    # -- cache ------------------------------------------------------------

    def add_or_touch(self, name: str, location_id: int = 0, stable_id: int = 0) -> bool:
        added = self._cache.add_or_touch(name, location_id, stable_id)
        if added:
            self._save()
        return added

    def trim(self, ttl_days: int | None = None) -> int:
        removed = self._cache.trim(self._ttl_days if ttl_days is None else ttl_days)
        if removed:
            self._save()
        return removed

    def clear_cache(self) -> int:
        removed = self._cache.clear()
        self._save()
        return removed

    @property
    def cache(self) -> FriendCache:
        return self._cache

    # -- operator actions ---------------------------------------------------

    def add_manual(self, name: str, location_label: str) -> ManualAddResult:
        result = self._manual.add_by_label(name, location_label, self._locations)
        if result is ManualAddResult.ADDED:
            self._save()
        return result

    def add_manual_from_entity(self, entity: Entity) -> ManualAddResult:
        self.clean_manual()
        result = self._manual.add(entity.name, entity.home_location_id, self._locations)
        if result is ManualAddResult.ADDED:
            self._save()
        return result

    def remove_manual(self, name: str, location_id: int) -> bool:
        removed = self._manual.remove(name, location_id)
        if removed:
            self._save()
        return removed

    def clean_manual(self) -> int:
        removed = self._manual.clean(self._locations)
        if removed:
            self._save()
        return removed

    def manual_entries(self) -> List[ManualEntry]:
        return self._manual.entries()

    def allow_entity(self, entity: Entity) -> bool:
        return self.allow_stable_id(entity.stable_id)

    def allow_stable_id(self, stable_id: int) -> bool:
        added = self._allow_list.add(stable_id)
        if added:
            self._save()
        return added

    def disallow_stable_id(self, stable_id: int) -> bool:
        removed = self._allow_list.remove(stable_id)
        if removed:
            self._save()
        return removed

    def allow_list_ids(self) -> List[int]:
        return self._allow_list.snapshot()

    def stable_id_for_manual(self, entry: ManualEntry) -> int:
        """Best-known stable id for a manual entry: the cache first, then visible entities."""
        for cached in self._cache.entries():
            if not cached.stable_id or not names_equal(cached.name, entry.name):
                continue
            if not entry.location_id or cached.location_id == entry.location_id:
                return cached.stable_id
        for entity in self._host.visible_entities():
            if not entity.stable_id or not names_equal(entity.name, entry.name):
                continue
            if not entry.location_id or entry.location_id in (entity.home_location_id, entity.current_location_id):
                return entity.stable_id
        return 0

    @property
    def policy(self) -> PolicyConfig:
        return self._policy

    def set_policy(self, **flags: Any) -> PolicyConfig:
        self._policy = self._policy.updated(flags)
        self._save()
        return self._policy

    @property
    def ttl_days(self) -> int:
        return self._ttl_days

    def set_ttl_days(self, days: int) -> int:
        self._ttl_days = int(days)
        self._save()
        return effective_ttl_days(self._ttl_days)

    @property
    def show_first_run_notice(self) -> bool:
        return self._show_first_run_notice

    def dismiss_first_run_notice(self) -> None:
        self._show_first_run_notice = False
        self._save()

    def reset_first_run_notice(self) -> None:
        self._show_first_run_notice = True
        self._save()

    def set_tables(self, locations: LocationTable, jobs: JobTable) -> None:
        self._locations = locations
        self._jobs = jobs
        self.clean_manual()

    @property
    def locations(self) -> LocationTable:
        return self._locations

    # -- persistence --------------------------------------------------------

    def snapshot_state(self) -> Dict[str, Any]:
        return {
            "version": STATE_VERSION,
            "cache_entries": self._cache.snapshot(),
            "manual_entries": self._manual.snapshot(),
            "allow_list_ids": self._allow_list.snapshot(),
            "policy": self._policy.to_dict(),
            "ttl_days": int(self._ttl_days),
            "show_first_run_notice": bool(self._show_first_run_notice),
        }

    def restore_state(self, state: Dict[str, Any]) -> None:
        if not isinstance(state, dict):
            return
        self._cache.restore(state.get("cache_entries", []))
        self._manual.restore(state.get("manual_entries", []))
        self._allow_list.restore(state.get("allow_list_ids", []))
        policy = state.get("policy")
        if isinstance(policy, dict):
            self._policy = self._policy.updated(policy)
        try:
            self._ttl_days = int(state.get("ttl_days", self._ttl_days))
        except (TypeError, ValueError):
            pass
        if "show_first_run_notice" in state:
            self._show_first_run_notice = bool(state.get("show_first_run_notice"))

    def status(self) -> Dict[str, Any]:
        return {
            "cache_entries": len(self._cache),
            "manual_entries": len(self._manual),
            "allow_list_ids": len(self._allow_list),
            "ttl_days": effective_ttl_days(self._ttl_days),
            "competitive": self._host.is_competitive(),
            "pending_seeds": len(self._scheduler.pending()),
            "last_seed_at": self.last_seed_at,
            "last_seed_added": self.last_seed_added,
            "show_first_run_notice": self._show_first_run_notice,
            "policy": self._policy.to_dict(),
        }

    def _save(self) -> None:
        if self._settings is None:
            return
        try:
            self._settings.save(self.snapshot_state())
        except Exception as exc:
            logger.warning("Settings save failed: %s: %s", exc.__class__.__name__, exc)

    @staticmethod
    def _is_due(last: Optional[float], interval: float, now: float) -> bool:
        return last is None or now - last >= interval
