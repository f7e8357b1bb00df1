from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Tuple

from .models import DisplayTransform, Entity


INBOUND_TYPES = frozenset(
    {
        "frame",
        "social_list_event",
        "roster",
        "surface_text",
        "tables",
        "force_seed",
        "add_manual",
        "add_manual_entity",
        "remove_manual",
        "allow_entity",
        "disallow_id",
        "set_policy",
        "set_ttl_days",
        "trim",
        "clear_cache",
        "dismiss_first_run",
        "reset_first_run",
        "status",
    }
)


@dataclass
class InboundMessage:
    msg_type: str
    data: Dict[str, Any]
    raw: Dict[str, Any]


def _normalize_data(data: Any) -> Dict[str, Any]:
    if isinstance(data, dict):
        return data
    if isinstance(data, str):
        try:
            parsed = json.loads(data)
            if isinstance(parsed, dict):
                return parsed
            return {"value": parsed}
        except json.JSONDecodeError:
            return {"value": data}
    return {"value": data}


def decode_message(line: str) -> InboundMessage:
    line = line.strip()
    if not line:
        raise ValueError("empty line")
    raw = json.loads(line)
    if not isinstance(raw, dict):
        raise ValueError("message is not an object")
    msg_type = raw.get("type")
    if not msg_type:
        raise ValueError("missing message type")
    if not isinstance(msg_type, str) or msg_type not in INBOUND_TYPES:
        raise ValueError(f"unknown message type: {msg_type!r}")
    data = _normalize_data(raw.get("data", {}))
    if msg_type == "frame" and not isinstance(data.get("entities", []), list):
        raise ValueError("frame entities must be a list")
    return InboundMessage(msg_type=msg_type, data=data, raw=raw)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def encode_message(msg_type: str, data: Dict[str, Any], message_id: str | None = None) -> str:
    payload = {
        "type": msg_type,
        "data": data,
        "id": message_id or _new_id("msg"),
        "timestamp": int(time.time()),
    }
    return json.dumps(payload, ensure_ascii=True) + "\n"


def build_display_response(decisions: Iterable[Tuple[Entity, DisplayTransform]]) -> Dict[str, Any]:
    plates = []
    for entity, transform in decisions:
        plate = transform.to_dict()
        plate["entity_name"] = entity.name
        plate["stable_id"] = entity.stable_id
        plates.append(plate)
    return {"plates": plates}
