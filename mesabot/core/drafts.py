"""
Draft Store — the in-progress reservation of one conversation.

A draft lives under `reservation_draft:{conversation_key}` with a sliding TTL:
every mutation saves the whole record again and refreshes the expiry. There is
at most one draft per conversation; starting a new one overwrites the old.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import ValidationError

from mesabot.core.keystore import KeyValueStore
from mesabot.core.parsing import format_name
from mesabot.core.schemas import MAX_PARTY_SIZE, MIN_PARTY_SIZE, Draft, DraftStep, EditField

logger = logging.getLogger(__name__)

KEY_PREFIX = "reservation_draft:"


class DraftStore:
    def __init__(self, kv: KeyValueStore, ttl_seconds: int = 3600):
        self.kv = kv
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _key(conversation_key: str) -> str:
        return f"{KEY_PREFIX}{conversation_key}"

    async def get(self, conversation_key: str) -> Draft | None:
        raw = await self.kv.get(self._key(conversation_key))
        if raw is None:
            return None
        try:
            return Draft.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable draft for %s", conversation_key)
            await self.delete(conversation_key)
            return None

    async def save(self, draft: Draft) -> Draft:
        draft.updated_at = datetime.now(timezone.utc)
        await self.kv.set(self._key(draft.conversation_key), draft.model_dump_json(), self.ttl_seconds)
        return draft

    async def delete(self, conversation_key: str) -> None:
        await self.kv.delete(self._key(conversation_key))

    # --- flow transitions ---

    async def start(self, conversation_key: str, venue_id: str, customer_name: str | None = None) -> Draft:
        """Start a fresh draft; with a known name it begins at the party size step."""
        draft = Draft(conversation_key=conversation_key, venue_id=venue_id)
        if customer_name:
            draft.customer_name = format_name(customer_name)
            draft.step = DraftStep.PARTY_SIZE
        logger.info("Draft started for %s at step %s", conversation_key, draft.step.value)
        return await self.save(draft)

    async def start_edit_menu(
        self,
        conversation_key: str,
        venue_id: str,
        reservation_id: str,
        customer_name: str | None,
        party_size: int | None,
        selected_zone: str | None = None,
    ) -> Draft:
        draft = Draft(
            conversation_key=conversation_key,
            venue_id=venue_id,
            step=DraftStep.EDIT_MENU,
            customer_name=customer_name,
            party_size=party_size,
            selected_zone=selected_zone,
            edit_mode=True,
            linked_reservation_id=reservation_id,
        )
        return await self.save(draft)

    async def start_edit(self, draft: Draft, field: EditField) -> Draft:
        """Leave the edit menu for the step that edits `field`."""
        draft.editing_field = field
        draft.step = DraftStep.PARTY_SIZE if field == EditField.PARTY_SIZE else DraftStep.ZONE_SELECTION
        draft.invalid_attempts = 0
        return await self.save(draft)

    async def set_name(self, draft: Draft, name: str) -> Draft:
        draft.customer_name = format_name(name)
        draft.step = DraftStep.PARTY_SIZE
        draft.invalid_attempts = 0
        return await self.save(draft)

    async def set_name_only(self, draft: Draft, name: str) -> Draft:
        """Correct the recorded name without moving the flow."""
        draft.customer_name = format_name(name)
        return await self.save(draft)

    async def set_party_size(self, draft: Draft, party_size: int) -> Draft:
        if not MIN_PARTY_SIZE <= party_size <= MAX_PARTY_SIZE:
            raise ValueError(
                f"party size must be between {MIN_PARTY_SIZE} and {MAX_PARTY_SIZE}, got {party_size}"
            )
        draft.party_size = party_size
        draft.step = DraftStep.ZONE_SELECTION
        draft.invalid_attempts = 0
        return await self.save(draft)

    async def select_zone(self, draft: Draft, zone_name: str) -> Draft:
        draft.selected_zone = zone_name
        draft.step = DraftStep.CONFIRMATION
        draft.invalid_attempts = 0
        return await self.save(draft)

    async def record_invalid_attempt(self, draft: Draft) -> int:
        draft.invalid_attempts += 1
        await self.save(draft)
        return draft.invalid_attempts

    async def mark_completed(self, draft: Draft) -> Draft:
        draft.step = DraftStep.COMPLETED
        draft.invalid_attempts = 0
        return await self.save(draft)
