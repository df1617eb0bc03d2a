"""
Conversation Serializer — one turn at a time per conversation.

Each key has a lane: the newest task for that key. A new turn waits for the
lane's tail to finish (successfully or not) before it starts, so turns of the
same conversation never overlap while different conversations interleave
freely.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

TurnFn = Callable[[], Awaitable[None]]


class ConversationSerializer:
    def __init__(self):
        self._tails: dict[str, asyncio.Task] = {}

    @property
    def pending(self) -> int:
        return len(self._tails)

    def run(self, conversation_key: str, turn_fn: TurnFn) -> asyncio.Task:
        """Schedule `turn_fn` after everything already queued for the key."""
        previous = self._tails.get(conversation_key)
        task = asyncio.create_task(self._chain(conversation_key, previous, turn_fn))
        self._tails[conversation_key] = task
        task.add_done_callback(lambda t: self._release(conversation_key, t))
        return task

    async def drain(self) -> None:
        """Wait until every lane is idle."""
        while self._tails:
            await asyncio.gather(*list(self._tails.values()), return_exceptions=True)

    async def _chain(self, conversation_key: str, previous: asyncio.Task | None, turn_fn: TurnFn) -> None:
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        try:
            await turn_fn()
        except Exception:
            logger.exception("Turn failed for conversation %s", conversation_key)

    def _release(self, conversation_key: str, task: asyncio.Task) -> None:
        if self._tails.get(conversation_key) is task:
            del self._tails[conversation_key]
