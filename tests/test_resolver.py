from friend_plates.cache import FriendCache
from friend_plates.config import PolicyConfig
from friend_plates.manual import AllowList, ManualFriendList
from friend_plates.models import Entity
from friend_plates.resolver import IdentityResolver


def _resolver(clock, policy: PolicyConfig | None = None):
    cache = FriendCache(clock=clock)
    manual = ManualFriendList()
    allow_list = AllowList()
    current = policy or PolicyConfig()
    resolver = IdentityResolver(cache, manual, allow_list, lambda: current)
    return resolver, cache, manual, allow_list


def test_friend_flag_wins_everywhere(clock):
    resolver, *_ = _resolver(clock)
    entity = Entity(name="Rhea Starlight", home_location_id=21, is_friend=True)
    assert resolver.reason(entity, competitive=False) == "flag"
    assert resolver.reason(entity, competitive=True) == "flag"


def test_allow_list_matches_stable_id(clock):
    resolver, _cache, _manual, allow_list = _resolver(clock)
    allow_list.add(900)
    assert resolver.reason(Entity(name="Tam Vale", stable_id=900), competitive=False) == "allow_list"
    assert not resolver.is_recognized_friend(Entity(name="Tam Vale", stable_id=901), competitive=False)


def test_cache_is_only_consulted_in_competitive_zones(clock):
    resolver, cache, *_ = _resolver(clock)
    cache.add_or_touch("Tam Vale", 22, 42)
    entity = Entity(name="Tam Vale", home_location_id=22, stable_id=42)
    assert resolver.reason(entity, competitive=True) == "cache_id"
    assert resolver.reason(entity, competitive=False) is None


def test_cache_policy_off_disables_cache_rules(clock):
    resolver, cache, *_ = _resolver(clock, PolicyConfig(use_cache_in_competitive=False))
    cache.add_or_touch("Tam Vale", 22, 42)
    assert not resolver.is_recognized_friend(Entity(name="Tam Vale", home_location_id=22, stable_id=42), True)


def test_cache_name_location_match(clock):
    resolver, cache, *_ = _resolver(clock)
    cache.add_or_touch("Ora Quill", 0)
    cache.add_or_touch("Rhea Starlight", 21)
    assert resolver.reason(Entity(name="ora quill", home_location_id=63), True) == "cache_name"
    assert resolver.reason(Entity(name="Rhea Starlight", home_location_id=21), True) == "cache_name"
    assert resolver.reason(Entity(name="Rhea Starlight", home_location_id=22), True) is None


def test_stable_id_is_checked_before_name(clock):
    resolver, cache, *_ = _resolver(clock)
    cache.add_or_touch("Tam Vale", 22, 42)
    entity = Entity(name="Tam Vale", home_location_id=22, stable_id=42)
    assert resolver.reason(entity, True) == "cache_id"


def test_manual_entries_need_exact_location(clock):
    resolver, _cache, manual, _allow = _resolver(clock)
    manual.add("Ora Quill", 63)
    assert resolver.reason(Entity(name="ORA QUILL", home_location_id=63), False) == "manual"
    assert resolver.reason(Entity(name="Ora Quill", home_location_id=0), False) is None
    assert resolver.reason(Entity(name="Ora Quill", home_location_id=21), True) is None


def test_result_reflects_current_state(clock):
    resolver, _cache, _manual, allow_list = _resolver(clock)
    entity = Entity(name="Tam Vale", stable_id=5)
    assert not resolver.is_recognized_friend(entity, False)
    allow_list.add(5)
    assert resolver.is_recognized_friend(entity, False)
    allow_list.remove(5)
    assert not resolver.is_recognized_friend(entity, False)


def test_explicit_policy_overrides_current_policy(clock):
    resolver, cache, *_ = _resolver(clock)
    cache.add_or_touch("Tam Vale", 22, 42)
    entity = Entity(name="Tam Vale", home_location_id=22, stable_id=42)
    no_cache = PolicyConfig(use_cache_in_competitive=False)
    assert resolver.reason(entity, True, no_cache) is None
    assert not resolver.is_recognized_friend(entity, True, no_cache)
    assert resolver.reason(entity, True) == "cache_id"
