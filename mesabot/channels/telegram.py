"""
Telegram Bot Channel Adapter — webhook-based integration.

Setup:
1. Create a bot via @BotFather -> get token
2. Store it: mesabot secrets set <venue_id> telegram_bot_token <token>
3. Set webhook: POST https://api.telegram.org/bot{token}/setWebhook?url={our_url}/api/v1/webhooks/telegram/{venue_id}
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

from mesabot.channels.base import ChannelAdapter, register_channel
from mesabot.core.engine import IncomingMessage

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org/bot"
TELEGRAM_MAX_TEXT = 4096


@register_channel("telegram")
class TelegramAdapter(ChannelAdapter):
    """
    Telegram Bot API adapter (webhook-based).

    Config keys:
        token: str - bot token
        webhook_url: str - public URL registered by setup()
    """

    def __init__(self, config: dict):
        super().__init__(config)
        self.token: str = config.get("token", "")
        self.api_base: str = f"{TELEGRAM_API_BASE}{self.token}"

    @staticmethod
    def parse_webhook(payload: dict, venue_id: str) -> IncomingMessage | None:
        """
        Parse a Telegram webhook update into IncomingMessage.

        Returns:
            IncomingMessage or None if the update is not a text message.
        """
        message = payload.get("message") or payload.get("edited_message") or {}
        text = message.get("text", "")
        if not text:
            return None

        chat = message.get("chat", {})
        from_user = message.get("from", {})
        sent_at = message.get("date")

        return IncomingMessage(
            venue_id=venue_id,
            address=str(chat.get("id", "")),
            text=text,
            channel_type="telegram",
            channel_message_id=str(message.get("message_id", "")),
            sender_name=_build_name(from_user),
            timestamp=datetime.fromtimestamp(sent_at, tz=timezone.utc) if sent_at else None,
            metadata={
                "telegram_chat_id": chat.get("id"),
                "telegram_user_id": from_user.get("id"),
                "telegram_username": from_user.get("username"),
            },
        )

    async def send(self, address: str, text: str) -> bool:
        """Send a message via Telegram Bot API."""
        if not self.token:
            logger.warning("Telegram token missing, cannot send to chat %s", address)
            return False
        try:
            async with httpx.AsyncClient() as client:
                for chunk in _split_text(text):
                    resp = await client.post(
                        f"{self.api_base}/sendMessage",
                        json={"chat_id": address, "text": chunk},
                        timeout=10.0,
                    )
                    if not resp.is_success:
                        logger.warning("Telegram API error: %s", resp.status_code)
                        return False
            logger.info("Sent Telegram message to chat %s", address)
            return True
        except Exception as e:
            logger.error("Telegram send failed: %s", e)
            return False

    async def setup(self) -> None:
        """Register webhook with Telegram. Requires webhook_url in config."""
        webhook_url = self.config.get("webhook_url")
        if not webhook_url:
            logger.warning("Telegram webhook_url not configured, skipping webhook setup")
            return

        async with httpx.AsyncClient() as client:
            resp = await client.post(
                f"{self.api_base}/setWebhook",
                json={"url": webhook_url},
                timeout=10.0,
            )

        if resp.is_success:
            logger.info("Telegram webhook set: %s", webhook_url)
        else:
            logger.error("Failed to set Telegram webhook: %s", resp.text)


def _build_name(from_user: dict) -> str | None:
    """Build display name from Telegram user object."""
    parts = [from_user.get("first_name", ""), from_user.get("last_name", "")]
    name = " ".join(p for p in parts if p).strip()
    return name or from_user.get("username") or None


def _split_text(text: str, limit: int = TELEGRAM_MAX_TEXT) -> list[str]:
    """Split on line boundaries so each piece fits in one Telegram message."""
    chunks: list[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks or [text]
