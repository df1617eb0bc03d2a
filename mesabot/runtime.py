"""
Bot runtime — builds the reservation services and owns their lifecycle.

    runtime = BotRuntime.from_settings(get_settings())
    await runtime.start()
    runtime.on_message(incoming)      # from the webhook
    await runtime.shutdown()
"""

from __future__ import annotations

import logging

from mesabot.channels.base import ChannelTransport
from mesabot.config import Settings
from mesabot.core.availability import AvailabilityCache
from mesabot.core.brain import Brain
from mesabot.core.change_listener import ChangeListener
from mesabot.core.codes import CodeAllocator
from mesabot.core.coalescer import MessageCoalescer
from mesabot.core.config_loader import load_bot_config
from mesabot.core.drafts import DraftStore
from mesabot.core.engine import IncomingMessage, ReservationEngine
from mesabot.core.generator import ResponseGenerator
from mesabot.core.history import AddressBook, ConversationHistory
from mesabot.core.intent_router import IntentRouter
from mesabot.core.serializer import ConversationSerializer

# Registers the channel adapters.
import mesabot.channels.console  # noqa: F401
import mesabot.channels.telegram  # noqa: F401

logger = logging.getLogger(__name__)


class BotRuntime:
    def __init__(
        self,
        settings: Settings,
        kv,
        store,
        transport,
        generator,
        router: IntentRouter,
        change_feed=None,
    ):
        self.settings = settings
        self.kv = kv
        self.store = store
        self.transport = transport
        self.change_feed = change_feed

        self.drafts = DraftStore(kv, ttl_seconds=settings.draft_ttl_seconds)
        self.availability = AvailabilityCache(kv, store, ttl_seconds=settings.availability_ttl_seconds)
        self.codes = CodeAllocator(store, max_attempts=settings.code_max_attempts)
        self.history = ConversationHistory(
            kv,
            max_messages=settings.history_max_messages,
            ttl_seconds=settings.history_ttl_seconds,
        )
        self.address_book = AddressBook(kv, ttl_seconds=settings.address_ttl_seconds)

        self.engine = ReservationEngine(
            drafts=self.drafts,
            availability=self.availability,
            codes=self.codes,
            store=store,
            generator=generator,
            transport=transport,
            history=self.history,
            address_book=self.address_book,
            router=router,
            max_invalid_attempts=settings.max_invalid_attempts,
            completion_grace_seconds=settings.completed_draft_grace_seconds,
        )
        self.serializer = ConversationSerializer()
        self.coalescer = MessageCoalescer(
            self.serializer,
            self.engine.handle_turn,
            debounce_seconds=settings.debounce_seconds,
        )
        self.change_listener = (
            ChangeListener(change_feed, self.availability, store, transport, self.address_book)
            if change_feed is not None
            else None
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport=None, with_change_feed: bool = True) -> "BotRuntime":
        from mesabot.core.keystore import RedisKeyValueStore
        from mesabot.core.store import SqlReservationStore
        from mesabot.db import async_session, asyncpg_dsn
        from mesabot.integrations.pg_changes import PgChangeFeed

        bot_config = load_bot_config(settings.bot_config_dir)
        brain = Brain.from_config(bot_config.agent.llm, api_key=settings.llm_api_key)
        generator = ResponseGenerator(brain, bot_config.agent, actions=bot_config.dialogue_policy.actions)

        return cls(
            settings=settings,
            kv=RedisKeyValueStore(settings.redis_url),
            store=SqlReservationStore(async_session),
            transport=transport or ChannelTransport(settings.channel_type),
            generator=generator,
            router=IntentRouter(bot_config.dialogue_policy.intents),
            change_feed=PgChangeFeed(asyncpg_dsn(settings.database_url)) if with_change_feed else None,
        )

    def on_message(self, message: IncomingMessage) -> None:
        """Accept an inbound message; it is processed after the debounce window."""
        self.coalescer.submit(message.conversation_key, message)

    async def start(self) -> None:
        if self.change_listener is not None:
            self.change_listener.attach()
            await self.change_feed.start()
        logger.info("Bot runtime started")

    async def shutdown(self) -> None:
        await self.coalescer.shutdown()
        await self.serializer.drain()
        await self.engine.shutdown()
        if self.change_feed is not None:
            await self.change_feed.stop()
        close_transport = getattr(self.transport, "close", None)
        if close_transport is not None:
            await close_transport()
        close_kv = getattr(self.kv, "close", None)
        if close_kv is not None:
            await close_kv()
        logger.info("Bot runtime stopped")
