from __future__ import annotations

from typing import Callable, Optional

from .cache import FriendCache
from .config import PolicyConfig
from .manual import AllowList, ManualFriendList
from .models import Entity
from .name_utils import normalize_name


class IdentityResolver:
    """Answers whether a live entity is a recognized friend.

    Rules are checked strongest first: the authoritative flag, the stable-id
    allow list, the cache by stable id and then by name + location (both only
    in competitive zones with the cache policy on), and finally the manual
    list. Nothing is memoized; every call reads current state.
    """

    def __init__(
        self,
        cache: FriendCache,
        manual: ManualFriendList,
        allow_list: AllowList,
        policy: Callable[[], PolicyConfig],
    ) -> None:
        self._cache = cache
        self._manual = manual
        self._allow_list = allow_list
        self._policy = policy

    def is_recognized_friend(self, entity: Entity, competitive: bool, policy: Optional[PolicyConfig] = None) -> bool:
        return self.reason(entity, competitive, policy) is not None

    def reason(self, entity: Entity, competitive: bool, policy: Optional[PolicyConfig] = None) -> Optional[str]:
        """Name the first matching rule; ``policy`` overrides the current policy for this call."""
        if entity.is_friend:
            return "flag"
        stable_id = int(entity.stable_id or 0)
        if stable_id and stable_id in self._allow_list:
            return "allow_list"
        name = normalize_name(entity.name)
        policy = policy or self._policy()
        use_cache = competitive and policy.use_cache_in_competitive
        if use_cache and stable_id and self._cache.find_by_stable_id(stable_id) is not None:
            return "cache_id"
        if use_cache and name and self._cache.find_by_name_location(name, entity.home_location_id) is not None:
            return "cache_name"
        if name and self._manual.contains(name, entity.home_location_id):
            return "manual"
        return None
