from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import yaml

from .models import Role
from .name_utils import name_key, normalize_name

logger = logging.getLogger("friend_plates_tables")

INVALID_LOCATION_IDS = frozenset({0, 0xFFFF})

TANK_ABBREVIATIONS = frozenset({"PLD", "WAR", "DRK", "GNB"})
HEALER_ABBREVIATIONS = frozenset({"WHM", "SCH", "AST", "SGE"})

# Role numbers used by the host's job sheet.
SHEET_ROLE_TANK = 1
SHEET_ROLE_HEALER = 4


class LocationTable:
    """Location id <-> label lookup backed by the host's location sheet."""

    def __init__(self, rows: Optional[Mapping[int, str]] = None) -> None:
        self._rows: Dict[int, str] = {}
        for key, value in (rows or {}).items():
            label = normalize_name(str(value or ""))
            if not label:
                continue
            self._rows[int(key)] = label

    @classmethod
    def from_mapping(cls, rows: Mapping[Any, Any]) -> "LocationTable":
        return cls({int(key): str(value) for key, value in (rows or {}).items()})

    def resolve(self, label: str) -> int:
        key = name_key(label)
        if not key:
            return 0
        for location_id, name in self._rows.items():
            if location_id in INVALID_LOCATION_IDS:
                continue
            if name.lower() == key:
                return location_id
        return 0

    def name_for(self, location_id: int) -> Optional[str]:
        if location_id in INVALID_LOCATION_IDS:
            return None
        return self._rows.get(int(location_id))

    def is_valid(self, location_id: int) -> bool:
        if location_id in INVALID_LOCATION_IDS:
            return False
        return int(location_id) in self._rows

    def known_ids(self) -> List[int]:
        return [location_id for location_id in self._rows if location_id not in INVALID_LOCATION_IDS]

    def names(self) -> List[str]:
        return [self._rows[location_id] for location_id in self.known_ids()]

    def __len__(self) -> int:
        return len(self.known_ids())


@dataclass(frozen=True)
class JobInfo:
    abbreviation: str
    sheet_role: int = 0


class JobTable:
    def __init__(self, rows: Optional[Mapping[int, JobInfo]] = None) -> None:
        self._rows: Dict[int, JobInfo] = dict(rows or {})

    @classmethod
    def from_mapping(cls, rows: Mapping[Any, Any]) -> "JobTable":
        parsed: Dict[int, JobInfo] = {}
        for key, value in (rows or {}).items():
            if isinstance(value, dict):
                abbreviation = str(value.get("abbreviation", "") or "").strip()
                sheet_role = int(value.get("role", 0) or 0)
            else:
                abbreviation = str(value or "").strip()
                sheet_role = 0
            parsed[int(key)] = JobInfo(abbreviation=abbreviation, sheet_role=sheet_role)
        return cls(parsed)

    def abbreviation(self, job_id: int) -> str:
        info = self._rows.get(int(job_id or 0))
        return info.abbreviation if info else ""

    def role(self, job_id: int) -> Role:
        info = self._rows.get(int(job_id or 0))
        if info is None:
            return Role.DPS
        abbreviation = info.abbreviation.upper()
        if abbreviation in TANK_ABBREVIATIONS:
            return Role.TANK
        if abbreviation in HEALER_ABBREVIATIONS:
            return Role.HEALER
        if info.sheet_role == SHEET_ROLE_TANK:
            return Role.TANK
        if info.sheet_role == SHEET_ROLE_HEALER:
            return Role.HEALER
        return Role.DPS


def load_tables(path: Optional[str]) -> Tuple[LocationTable, JobTable]:
    """Load location and job tables from a YAML data file.

    Expected shape::

        locations:
          21: Ravana
        jobs:
          19: {abbreviation: PLD, role: 1}

    A missing path yields empty tables.
    """
    if not path:
        return LocationTable(), JobTable()
    data_path = Path(path).expanduser()
    if not data_path.exists():
        logger.warning("Tables file not found: %s", data_path)
        return LocationTable(), JobTable()
    with data_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        return LocationTable(), JobTable()
    return tables_from_dict(raw)


def tables_from_dict(raw: Dict[str, Any]) -> Tuple[LocationTable, JobTable]:
    locations_raw = raw.get("locations", {}) if isinstance(raw.get("locations"), dict) else {}
    jobs_raw = raw.get("jobs", {}) if isinstance(raw.get("jobs"), dict) else {}
    locations = LocationTable.from_mapping(locations_raw)
    jobs = JobTable.from_mapping(jobs_raw)
    logger.info("Loaded %d locations and %d jobs", len(locations), len(jobs_raw))
    return locations, jobs


def location_names(table: LocationTable, ids: Iterable[int]) -> List[str]:
    return [table.name_for(location_id) or f"#{location_id}" for location_id in ids]
