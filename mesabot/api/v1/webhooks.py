"""
Webhook endpoints for channel adapters that use push-based delivery.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Request

from mesabot.channels.telegram import TelegramAdapter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/webhooks", tags=["webhooks"])


@router.post("/telegram/{venue_id}")
async def telegram_webhook(venue_id: UUID, request: Request) -> dict:
    """
    Receive Telegram Bot webhook updates.

    URL pattern: POST /api/v1/webhooks/telegram/{venue_id}

    The message is only queued here; the reply is sent after the debounce
    window. Always answers ok so Telegram does not redeliver.
    """
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Telegram webhook for venue %s with invalid JSON body", venue_id)
        return {"ok": True, "error": "invalid_json"}

    incoming = TelegramAdapter.parse_webhook(payload, str(venue_id))
    if incoming is None:
        return {"ok": True, "skipped": True}

    try:
        request.app.state.runtime.on_message(incoming)
    except Exception as e:
        logger.exception("Telegram webhook error for venue %s: %s", venue_id, e)
        return {"ok": True, "error": str(e)}
    return {"ok": True}
