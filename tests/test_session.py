import asyncio
import json

from friend_plates.config import SeedingConfig
from friend_plates.engine import Engine
from friend_plates.host import SnapshotHost
from friend_plates.session import ClientSession
from friend_plates.state import MemorySettingsStore


class DummyWriter:
    def __init__(self) -> None:
        self.lines = []

    def write(self, data: bytes) -> None:
        self.lines.append(json.loads(data.decode("utf-8")))

    async def drain(self) -> None:
        return None


def _session(clock, locations, jobs) -> ClientSession:
    host = SnapshotHost()
    engine = Engine(
        host=host,
        locations=locations,
        jobs=jobs,
        seeding_config=SeedingConfig(roster_poll_seconds=0),
        settings=MemorySettingsStore(),
        clock=clock,
    )
    return ClientSession(session_id="session_test", engine=engine, host=host, writer=DummyWriter())


def test_frame_returns_display_plates(clock, locations, jobs):
    session = _session(clock, locations, jobs)
    reply = session.handle_message(
        "frame",
        {
            "competitive": False,
            "entities": [
                {"name": "Rhea Starlight", "home_location_id": 21, "is_friend": True, "job_id": 24},
                {"name": "Some Stranger", "home_location_id": 22},
            ],
        },
    )
    msg_type, payload = reply
    assert msg_type == "display"
    assert [plate["kind"] for plate in payload["plates"]] == ["DEFAULT", "DEFAULT"]
    assert len(session.engine.cache) == 1


def test_roster_then_force_seed(clock, locations, jobs):
    session = _session(clock, locations, jobs)
    assert session.handle_message("roster", {"entries": [{"name": "Tam Vale", "home_location_id": 22, "stable_id": 42}]}) is None
    assert session.handle_message("force_seed", {}) == ("seed_result", {"added": 1, "total": 1})


def test_surface_text_feeds_fallback_scrape(clock, locations, jobs):
    session = _session(clock, locations, jobs)
    session.handle_message("surface_text", {"surface": "FriendList", "fragments": ["Ora Quill", "Gilgamesh"]})
    assert session.handle_message("force_seed", {}) == ("seed_result", {"added": 1, "total": 1})
    assert session.engine.cache.find_by_name_location("Ora Quill", 63) is not None


def test_manual_add_reply_carries_message(clock, locations, jobs):
    session = _session(clock, locations, jobs)
    msg_type, payload = session.handle_message("add_manual", {"name": "Ora Quill", "location": "Atlantis"})
    assert msg_type == "manual_result"
    assert payload == {"result": "UNKNOWN_LOCATION", "message": "Unknown location: Atlantis"}
    _msg_type, payload = session.handle_message("add_manual", {"name": "Ora Quill", "location": "Gilgamesh"})
    assert payload["result"] == "ADDED"


def test_policy_and_ttl_updates(clock, locations, jobs):
    session = _session(clock, locations, jobs)
    _msg_type, payload = session.handle_message("set_policy", {"scramble_all_in_competitive": "yes"})
    assert payload["policy"]["scramble_all_in_competitive"] is True
    assert session.handle_message("set_ttl_days", {"days": 3}) == ("ack", {"ttl_days": 7})
    assert session.handle_message("status", {})[1]["ttl_days"] == 7


def test_tables_message_replaces_tables(clock, locations, jobs):
    session = _session(clock, locations, jobs)
    reply = session.handle_message("tables", {"locations": {"5": "Zodiark"}, "jobs": {}})
    assert reply == ("ack", {"locations": 1})
    assert session.engine.locations.resolve("zodiark") == 5


def test_unknown_message_is_ignored(clock, locations, jobs):
    session = _session(clock, locations, jobs)
    assert session.handle_message("definitely_not_a_type", {}) is None


def test_process_queue_sends_replies_and_survives_bad_payloads(clock, locations, jobs):
    session = _session(clock, locations, jobs)

    async def run() -> None:
        queue = asyncio.Queue()
        worker = asyncio.create_task(session.process_queue(queue))
        await queue.put(("set_ttl_days", {"days": "not a number"}))
        await queue.put(("status", {}))
        await queue.join()
        worker.cancel()
        try:
            await worker
        except asyncio.CancelledError:
            pass

    asyncio.run(run())
    sent = session.writer.lines
    assert [line["type"] for line in sent] == ["status"]
    assert sent[0]["data"]["cache_entries"] == 0
