from __future__ import annotations

import json
import logging

from mesabot.core.keystore import KeyValueStore

logger = logging.getLogger(__name__)

HISTORY_PREFIX = "conversation_history:"
ADDRESS_PREFIX = "address:"


class ConversationHistory:
    """Recent generator exchanges of one conversation (role/content dicts)."""

    def __init__(self, kv: KeyValueStore, max_messages: int = 10, ttl_seconds: int = 3600):
        self.kv = kv
        self.max_messages = max_messages
        self.ttl_seconds = ttl_seconds

    async def get(self, conversation_key: str) -> list[dict]:
        raw = await self.kv.get(f"{HISTORY_PREFIX}{conversation_key}")
        if not raw:
            return []
        try:
            messages = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable history for %s", conversation_key)
            return []
        return messages if isinstance(messages, list) else []

    async def append(self, conversation_key: str, *messages: dict) -> None:
        history = await self.get(conversation_key)
        history.extend(messages)
        history = history[-self.max_messages :]
        await self.kv.set(
            f"{HISTORY_PREFIX}{conversation_key}",
            json.dumps(history, ensure_ascii=False),
            self.ttl_seconds,
        )

    async def clear(self, conversation_key: str) -> None:
        await self.kv.delete(f"{HISTORY_PREFIX}{conversation_key}")

    async def last_assistant_message(self, conversation_key: str) -> str | None:
        for message in reversed(await self.get(conversation_key)):
            if message.get("role") == "assistant":
                return message.get("content") or ""
        return None


class AddressBook:
    """
    Last inbound channel address per (venue, phone).

    Outbound notifications that only know the stored phone use it to reach the
    exact address the customer wrote from.
    """

    def __init__(self, kv: KeyValueStore, ttl_seconds: int = 30 * 24 * 60 * 60):
        self.kv = kv
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _key(venue_id: str, phone: str) -> str:
        return f"{ADDRESS_PREFIX}{venue_id}:{phone}"

    async def get(self, venue_id: str, phone: str) -> str | None:
        return await self.kv.get(self._key(venue_id, phone))

    async def set(self, venue_id: str, phone: str, address: str, ttl_seconds: int | None = None) -> None:
        await self.kv.set(self._key(venue_id, phone), address, ttl_seconds or self.ttl_seconds)
