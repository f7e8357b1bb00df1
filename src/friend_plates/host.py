from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from .models import Entity, RosterEntry


class HostWorld(Protocol):
    """Read-only view of the game client the engine runs against."""

    def visible_entities(self) -> List[Entity]:
        ...

    def is_competitive(self) -> bool:
        ...

    def roster(self) -> Optional[List[RosterEntry]]:
        """Structured friend roster, or None while it is not ready."""
        ...

    def surface_text(self, surface: str) -> List[str]:
        """Already rendered text fragments of a UI surface, in on-screen order."""
        ...


class SnapshotHost:
    """HostWorld fed by snapshots pushed from the client plugin."""

    def __init__(self) -> None:
        self._entities: List[Entity] = []
        self._competitive = False
        self._roster: Optional[List[RosterEntry]] = None
        self._surfaces: Dict[str, List[str]] = {}

    def visible_entities(self) -> List[Entity]:
        return list(self._entities)

    def is_competitive(self) -> bool:
        return self._competitive

    def roster(self) -> Optional[List[RosterEntry]]:
        if self._roster is None:
            return None
        return list(self._roster)

    def surface_text(self, surface: str) -> List[str]:
        return list(self._surfaces.get(surface, []))

    def update_frame(self, data: Dict[str, Any]) -> None:
        self._competitive = bool(data.get("competitive", False))
        raw_entities = data.get("entities", [])
        if isinstance(raw_entities, list):
            self._entities = [Entity.from_dict(raw) for raw in raw_entities if isinstance(raw, dict)]

    def update_roster(self, raw_entries: Any) -> None:
        if raw_entries is None:
            self._roster = None
            return
        if not isinstance(raw_entries, list):
            return
        self._roster = [RosterEntry.from_dict(raw) for raw in raw_entries if isinstance(raw, dict)]

    def update_surface(self, surface: str, fragments: Any) -> None:
        if not surface:
            return
        if not isinstance(fragments, list):
            self._surfaces.pop(surface, None)
            return
        self._surfaces[surface] = [str(fragment) for fragment in fragments if fragment is not None]
