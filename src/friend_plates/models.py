from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class DisplayKind(str, Enum):
    REAL = "REAL"
    SCRAMBLED = "SCRAMBLED"
    DEFAULT = "DEFAULT"


class Role(str, Enum):
    TANK = "TANK"
    HEALER = "HEALER"
    DPS = "DPS"


ROLE_COLORS: Dict[Role, int] = {
    Role.TANK: 517,
    Role.HEALER: 45,
    Role.DPS: 506,
}


@dataclass
class CacheEntry:
    stable_id: int = 0
    name: str = ""
    location_id: int = 0
    last_seen: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stable_id": int(self.stable_id),
            "name": self.name,
            "location_id": int(self.location_id),
            "last_seen": int(self.last_seen),
        }


@dataclass(frozen=True)
class ManualEntry:
    name: str
    location_id: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "location_id": int(self.location_id)}


@dataclass
class Entity:
    name: str
    home_location_id: int = 0
    stable_id: int = 0
    is_friend: bool = False
    job_id: int = 0
    current_location_id: int = 0

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Entity":
        return cls(
            name=str(raw.get("name", "") or ""),
            home_location_id=int(raw.get("home_location_id", 0) or 0),
            stable_id=int(raw.get("stable_id", 0) or 0),
            is_friend=bool(raw.get("is_friend", False)),
            job_id=int(raw.get("job_id", 0) or 0),
            current_location_id=int(raw.get("current_location_id", 0) or 0),
        )


@dataclass
class RosterEntry:
    name: str
    current_location_id: int = 0
    home_location_id: int = 0
    stable_id: int = 0

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "RosterEntry":
        return cls(
            name=str(raw.get("name", "") or ""),
            current_location_id=int(raw.get("current_location_id", 0) or 0),
            home_location_id=int(raw.get("home_location_id", 0) or 0),
            stable_id=int(raw.get("stable_id", 0) or 0),
        )

    def best_location_id(self) -> int:
        if self.current_location_id:
            return self.current_location_id
        return self.home_location_id or 0


@dataclass
class DisplayTransform:
    kind: DisplayKind
    name: str = ""
    job_tag: str = ""
    tag_color: Optional[int] = None
    clear_title: bool = True

    def text(self) -> str:
        if self.job_tag:
            return f"{self.job_tag} {self.name}"
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "name": self.name,
            "job_tag": self.job_tag,
            "tag_color": self.tag_color,
            "clear_title": self.clear_title,
            "text": self.text(),
        }
