from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .engine import Engine
from .host import SnapshotHost
from .models import Entity
from .protocol import build_display_response, encode_message
from .tables import tables_from_dict

logger = logging.getLogger("friend_plates_session")

Reply = Optional[Tuple[str, Dict[str, Any]]]


@dataclass
class ClientSession:
    session_id: str
    engine: Engine
    host: SnapshotHost
    writer: Any

    def __post_init__(self) -> None:
        self._write_lock = asyncio.Lock()

    def handle_message(self, msg_type: str, data: Dict[str, Any]) -> Reply:
        if msg_type == "frame":
            self.host.update_frame(data)
            self.engine.tick()
            return "display", build_display_response(self.engine.decide_visible())
        if msg_type == "social_list_event":
            scheduled = self.engine.notify_social_list_event()
            return "ack", {"scheduled": scheduled}
        if msg_type == "roster":
            self.host.update_roster(data.get("entries"))
            return None
        if msg_type == "surface_text":
            self.host.update_surface(str(data.get("surface", "") or ""), data.get("fragments"))
            return None
        if msg_type == "tables":
            locations, jobs = tables_from_dict(data)
            self.engine.set_tables(locations, jobs)
            return "ack", {"locations": len(locations)}
        if msg_type == "force_seed":
            added, total = self.engine.force_seed_now()
            return "seed_result", {"added": added, "total": total}
        if msg_type == "add_manual":
            location = str(data.get("location", "") or "")
            result = self.engine.add_manual(str(data.get("name", "") or ""), location)
            return "manual_result", {"result": result.value, "message": result.message(location)}
        if msg_type == "add_manual_entity":
            entity = _entity_from(data)
            if entity is None:
                return None
            result = self.engine.add_manual_from_entity(entity)
            return "manual_result", {"result": result.value, "message": result.message()}
        if msg_type == "remove_manual":
            removed = self.engine.remove_manual(
                str(data.get("name", "") or ""),
                int(data.get("location_id", 0) or 0),
            )
            return "ack", {"removed": removed}
        if msg_type == "allow_entity":
            entity = _entity_from(data)
            if entity is None:
                return None
            return "ack", {"allowed": self.engine.allow_entity(entity)}
        if msg_type == "disallow_id":
            return "ack", {"removed": self.engine.disallow_stable_id(int(data.get("stable_id", 0) or 0))}
        if msg_type == "set_policy":
            policy = self.engine.set_policy(**data)
            return "ack", {"policy": policy.to_dict()}
        if msg_type == "set_ttl_days":
            days = self.engine.set_ttl_days(int(data.get("days", data.get("value", 0)) or 0))
            return "ack", {"ttl_days": days}
        if msg_type == "trim":
            return "ack", {"removed": self.engine.trim()}
        if msg_type == "clear_cache":
            return "ack", {"removed": self.engine.clear_cache()}
        if msg_type == "dismiss_first_run":
            self.engine.dismiss_first_run_notice()
            return "ack", {"show_first_run_notice": False}
        if msg_type == "reset_first_run":
            self.engine.reset_first_run_notice()
            return "ack", {"show_first_run_notice": True}
        if msg_type == "status":
            return "status", self.engine.status()
        logger.debug("Ignoring unknown message type from %s: %s", self.session_id, msg_type)
        return None

    async def send(self, msg_type: str, payload: Dict[str, Any]) -> None:
        message = encode_message(msg_type, payload)
        async with self._write_lock:
            self.writer.write(message.encode("utf-8"))
            await self.writer.drain()

    async def process_queue(self, queue: asyncio.Queue[Tuple[str, Dict[str, Any]]]) -> None:
        while True:
            msg_type, data = await queue.get()
            try:
                try:
                    reply = self.handle_message(msg_type, data)
                except (TypeError, ValueError) as exc:
                    logger.warning("Bad %s payload from %s: %s", msg_type, self.session_id, exc)
                    continue
                if reply is not None:
                    await self.send(*reply)
            finally:
                queue.task_done()


def _entity_from(data: Dict[str, Any]) -> Optional[Entity]:
    raw = data.get("entity", data)
    if not isinstance(raw, dict):
        return None
    return Entity.from_dict(raw)
