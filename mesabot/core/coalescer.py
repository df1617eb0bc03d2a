"""
Message Coalescer — debounce bursts of inbound messages into one turn.

People often type "hola" / "quiero reservar" / "para 4" as three quick
messages. Each arrival restarts the per-conversation timer; when it fires the
buffered texts are newline-joined (arrival order) into a single message that
keeps the envelope of the first one, and handed to the serializer once.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable

from mesabot.core.engine import IncomingMessage
from mesabot.core.serializer import ConversationSerializer

logger = logging.getLogger(__name__)

TurnHandler = Callable[[IncomingMessage], Awaitable[None]]


class MessageCoalescer:
    def __init__(
        self,
        serializer: ConversationSerializer,
        handler: TurnHandler,
        debounce_seconds: float = 1.5,
    ):
        self.serializer = serializer
        self.handler = handler
        self.debounce_seconds = debounce_seconds
        self._buffers: dict[str, list[IncomingMessage]] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}

    def submit(self, conversation_key: str, message: IncomingMessage) -> None:
        """Buffer a message and (re)start the debounce timer for its conversation."""
        self._buffers.setdefault(conversation_key, []).append(message)

        timer = self._timers.pop(conversation_key, None)
        if timer is not None:
            timer.cancel()

        loop = asyncio.get_running_loop()
        self._timers[conversation_key] = loop.call_later(self.debounce_seconds, self._flush, conversation_key)
        logger.debug(
            "Buffered message for %s (%s pending)", conversation_key, len(self._buffers[conversation_key])
        )

    def pending(self, conversation_key: str) -> int:
        return len(self._buffers.get(conversation_key, []))

    async def shutdown(self) -> None:
        """Cancel timers and hand every pending buffer to the serializer right away."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        for conversation_key in list(self._buffers):
            self._flush(conversation_key)

    def _flush(self, conversation_key: str) -> None:
        self._timers.pop(conversation_key, None)
        messages = self._buffers.pop(conversation_key, [])
        if not messages:
            return

        turn = merge_messages(messages)
        if len(messages) > 1:
            logger.info("Coalesced %s messages for %s", len(messages), conversation_key)

        async def _turn() -> None:
            await self.handler(turn)

        self.serializer.run(conversation_key, _turn)


def merge_messages(messages: list[IncomingMessage]) -> IncomingMessage:
    first = messages[0]
    if len(messages) == 1:
        return first
    return dataclasses.replace(first, text="\n".join(m.text for m in messages))
