from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
from typing import Dict, Optional

from .config import ServerConfig, load_config
from .engine import Engine
from .host import SnapshotHost
from .protocol import decode_message
from .session import ClientSession
from .state import MemorySettingsStore, SettingsStore
from .tables import load_tables

logger = logging.getLogger("friend_plates_server")


class FriendPlatesServer:
    def __init__(self, host: str, port: int, config: ServerConfig) -> None:
        self._host = host
        self._port = port
        self._config = config
        self._sessions: Dict[str, ClientSession] = {}
        self._counter = 0
        self._server: asyncio.AbstractServer | None = None

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle_client, self._host, self._port)
        addr = ", ".join(str(sock.getsockname()) for sock in self._server.sockets or [])
        logger.info("Server listening on %s", addr)
        async with self._server:
            await self._server.serve_forever()

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._counter += 1
        session_id = f"session_{self._counter}"
        host = SnapshotHost()
        engine = build_engine(self._config, host)
        session = ClientSession(session_id=session_id, engine=engine, host=host, writer=writer)
        self._sessions[session_id] = session
        peer = writer.get_extra_info("peername")
        logger.info("Client connected: %s (%s)", session_id, peer)

        queue: asyncio.Queue[tuple[str, dict]] = asyncio.Queue(maxsize=self._config.queue_max_size)
        worker = asyncio.create_task(session.process_queue(queue))
        try:
            while not reader.at_eof():
                line = await reader.readline()
                if not line:
                    break
                try:
                    message = decode_message(line.decode("utf-8"))
                except Exception as exc:
                    logger.warning("Decode error from %s: %s", session_id, exc)
                    continue
                await self._enqueue_message(queue, session_id, message.msg_type, message.data)
        finally:
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker
            writer.close()
            with contextlib.suppress(ConnectionError):
                await writer.wait_closed()
            self._sessions.pop(session_id, None)
            logger.info("Client disconnected: %s", session_id)

    async def _enqueue_message(
        self,
        queue: asyncio.Queue[tuple[str, dict]],
        session_id: str,
        msg_type: str,
        data: dict,
    ) -> None:
        item = (msg_type, data)
        if not queue.full():
            await queue.put(item)
            return
        if self._config.queue_drop_policy == "drop_newest":
            logger.warning("Dropped incoming message for %s: %s", session_id, msg_type)
            return
        try:
            dropped = queue.get_nowait()
            queue.task_done()
            logger.warning("Dropped queued message for %s: %s", session_id, dropped[0])
        except asyncio.QueueEmpty:
            pass
        await queue.put(item)


def build_engine(config: ServerConfig, host: SnapshotHost) -> Engine:
    locations, jobs = load_tables(config.tables_path)
    if config.state.persist:
        settings = SettingsStore(config.state.state_dir, config.state.profile)
    else:
        settings = MemorySettingsStore()
    return Engine(
        host=host,
        locations=locations,
        jobs=jobs,
        policy=config.policy,
        cache_config=config.cache,
        seeding_config=config.seeding,
        settings=settings,
    )


async def run_server(host: Optional[str], port: Optional[int], config_path: Optional[str] = None) -> None:
    config = load_config(config_path)
    if host:
        config.host = host
    if port:
        config.port = port
    server = FriendPlatesServer(config.host, config.port, config)
    await server.start()


def main() -> None:
    parser = argparse.ArgumentParser(description="Friend nameplate engine bridge")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--config", default=None)
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args()
    level = (args.log_level or load_config(args.config).log_level or "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")
    asyncio.run(run_server(args.host, args.port, args.config))


if __name__ == "__main__":
    main()
