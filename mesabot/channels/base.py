"""
Base Channel Adapter — abstract interface for messenger integrations.

To add a new channel:
1. Create a file in mesabot/channels/ (e.g., whatsapp.py)
2. Subclass ChannelAdapter and implement send()
3. Register it with @register_channel("whatsapp")
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from mesabot.core.secrets import resolve_secret

logger = logging.getLogger(__name__)


class ChannelAdapter(ABC):
    """
    Base class for all channel adapters.

    Each adapter talks to one external messaging platform on behalf of one venue.
    """

    # Channel type identifier (e.g., "telegram", "console").
    channel_type: str = ""

    def __init__(self, config: dict):
        self.config = config

    @abstractmethod
    async def send(self, address: str, text: str) -> bool:
        """
        Send a message to the channel.

        Args:
            address: Channel-specific recipient (chat id, phone, ...).
            text: Message text to send.

        Returns:
            True if sent successfully. Never raises on delivery errors.
        """

    async def setup(self) -> None:
        """Optional setup hook (e.g., register webhooks)."""

    async def teardown(self) -> None:
        """Optional cleanup hook."""


# --- Channel Registry ---

# Map of channel_type -> adapter class.
CHANNEL_REGISTRY: dict[str, type[ChannelAdapter]] = {}


def register_channel(channel_type: str):
    """Decorator to register a channel adapter class."""

    def decorator(cls: type[ChannelAdapter]):
        cls.channel_type = channel_type
        CHANNEL_REGISTRY[channel_type] = cls
        return cls

    return decorator


def get_channel_adapter(channel_type: str, config: dict) -> ChannelAdapter:
    """
    Factory: create a channel adapter by type.

    Raises:
        ValueError: If channel_type is not registered.
    """
    cls = CHANNEL_REGISTRY.get(channel_type)
    if cls is None:
        available = ", ".join(CHANNEL_REGISTRY.keys()) or "(none)"
        raise ValueError(f"Unknown channel type: '{channel_type}'. Available: {available}")
    return cls(config)


class ChannelTransport:
    """
    Outbound side of the bot: `send(venue_id, address, text)`.

    One adapter per venue is built lazily; its token comes from the venue's
    `{channel_type}_bot_token` secret.
    """

    def __init__(self, channel_type: str = "telegram", base_config: dict | None = None):
        self.channel_type = channel_type
        self.base_config = base_config or {}
        self._adapters: dict[str, ChannelAdapter] = {}

    def adapter_for(self, venue_id: str) -> ChannelAdapter:
        adapter = self._adapters.get(venue_id)
        if adapter is None:
            config = dict(self.base_config)
            config.setdefault("token", resolve_secret(venue_id, f"{self.channel_type}_bot_token") or "")
            adapter = get_channel_adapter(self.channel_type, config)
            self._adapters[venue_id] = adapter
        return adapter

    async def send(self, venue_id: str, address: str, text: str) -> bool:
        try:
            adapter = self.adapter_for(venue_id)
            return await adapter.send(address, text)
        except Exception:
            logger.exception("Channel send failed for venue %s", venue_id)
            return False

    async def close(self) -> None:
        for adapter in self._adapters.values():
            await adapter.teardown()
        self._adapters.clear()
