from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml


@dataclass
class PolicyConfig:
    show_friends_real: bool = True
    scramble_all_in_competitive: bool = False
    real_names_only_in_competitive: bool = False
    test_scramble_outside_competitive: bool = False
    use_cache_in_competitive: bool = True
    show_role_tag: bool = True

    def to_dict(self) -> Dict[str, bool]:
        return {item.name: bool(getattr(self, item.name)) for item in fields(self)}

    def updated(self, values: Dict[str, Any]) -> "PolicyConfig":
        current = self.to_dict()
        for key, value in (values or {}).items():
            if key in current:
                current[key] = _parse_bool(value)
        return PolicyConfig(**current)


@dataclass
class CacheConfig:
    ttl_days: int = 90
    touch_coalesce_seconds: float = 60.0
    trim_interval_seconds: float = 60.0


@dataclass
class SeedingConfig:
    observe_interval_seconds: float = 5.0
    roster_poll_seconds: float = 120.0
    event_debounce_seconds: float = 1.0
    seed_delays: Tuple[float, ...] = (0.35, 8.0)
    dedupe_tolerance_seconds: float = 0.3
    max_seeds_per_tick: int = 3
    window_sizes: Tuple[int, ...] = (6, 5, 4, 3)
    social_list_surface: str = "FriendList"
    ignored_fragments: Tuple[str, ...] = ("Friend List", "Last Online", "Online Status")


@dataclass
class StateConfig:
    persist: bool = True
    state_dir: str = ".friend_plates"
    profile: str = "default"


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 9977
    queue_max_size: int = 200
    queue_drop_policy: str = "drop_oldest"  # drop_oldest | drop_newest
    log_level: str = "INFO"
    tables_path: str = ""
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    seeding: SeedingConfig = field(default_factory=SeedingConfig)
    state: StateConfig = field(default_factory=StateConfig)


def _resolve_default_config_path() -> Optional[Path]:
    env_path = os.getenv("FRIEND_PLATES_CONFIG", "")
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path
    local = Path.cwd() / "config.yaml"
    if local.exists():
        return local
    return None


def _load_yaml(path: Optional[Path]) -> Dict[str, Any]:
    if path is None or not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return data if isinstance(data, dict) else {}


def _section(raw: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = raw.get(key, {})
    return value if isinstance(value, dict) else {}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on", "enabled"}
    return bool(value)


def _float_tuple(value: Any, default: Tuple[float, ...]) -> Tuple[float, ...]:
    if value in (None, ""):
        return default
    if isinstance(value, str):
        value = [part for part in value.split(",") if part.strip()]
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"expected a list of numbers, got {value!r}")
    return tuple(float(item) for item in value)


def _int_tuple(value: Any, default: Tuple[int, ...]) -> Tuple[int, ...]:
    return tuple(int(item) for item in _float_tuple(value, tuple(float(v) for v in default)))


def _str_tuple(value: Any, default: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return default
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"expected a list of strings, got {value!r}")
    return tuple(str(item).strip() for item in value if str(item or "").strip())


def load_config(path: Optional[str] = None) -> ServerConfig:
    config_path = Path(path) if path else _resolve_default_config_path()
    raw = _load_yaml(config_path)

    server_raw = _section(raw, "server")
    policy_raw = _section(raw, "policy")
    cache_raw = _section(raw, "cache")
    seeding_raw = _section(raw, "seeding")
    state_raw = _section(raw, "state")

    policy_config = PolicyConfig().updated(policy_raw)

    cache_config = CacheConfig(
        ttl_days=int(os.getenv("FRIEND_PLATES_TTL_DAYS", cache_raw.get("ttl_days", CacheConfig().ttl_days))),
        touch_coalesce_seconds=float(
            cache_raw.get("touch_coalesce_seconds", CacheConfig().touch_coalesce_seconds)
        ),
        trim_interval_seconds=float(cache_raw.get("trim_interval_seconds", CacheConfig().trim_interval_seconds)),
    )

    defaults = SeedingConfig()
    seeding_config = SeedingConfig(
        observe_interval_seconds=float(
            seeding_raw.get("observe_interval_seconds", defaults.observe_interval_seconds)
        ),
        roster_poll_seconds=float(
            os.getenv(
                "FRIEND_PLATES_ROSTER_POLL_SECONDS",
                seeding_raw.get("roster_poll_seconds", defaults.roster_poll_seconds),
            )
        ),
        event_debounce_seconds=float(seeding_raw.get("event_debounce_seconds", defaults.event_debounce_seconds)),
        seed_delays=_float_tuple(seeding_raw.get("seed_delays"), defaults.seed_delays),
        dedupe_tolerance_seconds=float(
            seeding_raw.get("dedupe_tolerance_seconds", defaults.dedupe_tolerance_seconds)
        ),
        max_seeds_per_tick=int(seeding_raw.get("max_seeds_per_tick", defaults.max_seeds_per_tick)),
        window_sizes=_int_tuple(seeding_raw.get("window_sizes"), defaults.window_sizes),
        social_list_surface=str(seeding_raw.get("social_list_surface", defaults.social_list_surface)),
        ignored_fragments=_str_tuple(seeding_raw.get("ignored_fragments"), defaults.ignored_fragments),
    )

    state_config = StateConfig(
        persist=_parse_bool(state_raw.get("persist", StateConfig().persist)),
        state_dir=os.getenv("FRIEND_PLATES_STATE_DIR", str(state_raw.get("state_dir", StateConfig().state_dir))),
        profile=os.getenv("FRIEND_PLATES_PROFILE", str(state_raw.get("profile", StateConfig().profile))),
    )

    return ServerConfig(
        host=os.getenv("FRIEND_PLATES_HOST", str(server_raw.get("host", ServerConfig().host))),
        port=int(os.getenv("FRIEND_PLATES_PORT", server_raw.get("port", ServerConfig().port))),
        queue_max_size=int(server_raw.get("queue_max_size", ServerConfig().queue_max_size)),
        queue_drop_policy=str(server_raw.get("queue_drop_policy", ServerConfig().queue_drop_policy)),
        log_level=os.getenv("FRIEND_PLATES_LOG_LEVEL", str(raw.get("log_level", ServerConfig().log_level))),
        tables_path=os.getenv("FRIEND_PLATES_TABLES", str(raw.get("tables_path", "") or "")),
        policy=policy_config,
        cache=cache_config,
        seeding=seeding_config,
        state=state_config,
    )
