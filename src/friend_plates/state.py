from __future__ import annotations

import json
import re
import tempfile
from pathlib import Path
from typing import Any, Dict

STATE_VERSION = 6


def _slug(value: str) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9._-]+", "_", value.strip())
    return cleaned or "default"


class SettingsStore:
    """Persists the engine's settings record as one JSON file per profile."""

    def __init__(self, state_dir: str, profile: str) -> None:
        base = Path(state_dir).expanduser()
        base.mkdir(parents=True, exist_ok=True)
        self._path = base / f"friend_plates_{_slug(profile or 'default')}.json"

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
        if not isinstance(data, dict):
            return {}
        return data

    def save(self, state: Dict[str, Any]) -> None:
        payload = dict(state or {})
        payload.setdefault("version", STATE_VERSION)
        self._atomic_write(payload)

    def _atomic_write(self, payload: Dict[str, Any]) -> None:
        tmp_path = ""
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=str(self._path.parent),
                prefix="friend_plates_",
                suffix=".json",
                delete=False,
            ) as handle:
                json.dump(payload, handle, ensure_ascii=True, indent=2)
                handle.flush()
                tmp_path = handle.name
            Path(tmp_path).replace(self._path)
        finally:
            if tmp_path:
                Path(tmp_path).unlink(missing_ok=True)


class MemorySettingsStore:
    """In-process settings store, used when persistence is disabled."""

    def __init__(self, initial: Dict[str, Any] | None = None) -> None:
        self._state: Dict[str, Any] = json.loads(json.dumps(initial or {}))
        self.saves = 0

    def load(self) -> Dict[str, Any]:
        return json.loads(json.dumps(self._state))

    def save(self, state: Dict[str, Any]) -> None:
        self._state = json.loads(json.dumps(state or {}))
        self.saves += 1
