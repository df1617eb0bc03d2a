"""
PostgreSQL change feed — LISTEN/NOTIFY over a dedicated asyncpg connection.

Triggers created by the migration publish on `mesabot_{entity}` with a JSON
payload: {"event": "INSERT|UPDATE|DELETE", "old": {...} | null, "new": {...} | null}.
"""

from __future__ import annotations

import asyncio
import json
import logging

import asyncpg

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "mesabot_"


class PgChangeFeed:
    def __init__(self, dsn: str):
        self.dsn = dsn
        self._handlers: dict[str, list] = {}
        self._conn: asyncpg.Connection | None = None
        self._tasks: set[asyncio.Task] = set()

    def subscribe(self, entity_type: str, handler) -> None:
        self._handlers.setdefault(entity_type, []).append(handler)

    async def start(self) -> None:
        if self._conn is not None:
            raise RuntimeError("change feed already started")
        self._conn = await asyncpg.connect(self.dsn)
        for entity_type in self._handlers:
            await self._conn.add_listener(f"{CHANNEL_PREFIX}{entity_type}", self._on_notify)
        logger.info("Listening for changes on %s", ", ".join(sorted(self._handlers)) or "(nothing)")

    async def stop(self) -> None:
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        for entity_type in self._handlers:
            await conn.remove_listener(f"{CHANNEL_PREFIX}{entity_type}", self._on_notify)
        await conn.close()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        logger.info("Change feed stopped")

    def _on_notify(self, connection, pid: int, channel: str, payload: str) -> None:
        entity_type = channel.removeprefix(CHANNEL_PREFIX)
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            logger.warning("Malformed change payload on %s: %s", channel, payload[:200])
            return
        self.dispatch(entity_type, data.get("event", ""), data.get("old"), data.get("new"))

    def dispatch(self, entity_type: str, event_type: str, before: dict | None, after: dict | None) -> None:
        for handler in self._handlers.get(entity_type, []):
            task = asyncio.create_task(handler(event_type, before, after))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
