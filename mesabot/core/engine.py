"""
Reservation Engine — drives one conversation turn through the reservation flow.

Steps: name → party_size → zone_selection → confirmation → completed, plus
an edit_menu entered when a greeting arrives while the customer already has
an active reservation for today.

Only the conversational situations (no draft, name step) go through the
response generator; the other steps are answered from templates.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from mesabot.core import messages
from mesabot.core.availability import AvailabilityCache
from mesabot.core.codes import CodeAllocator
from mesabot.core.drafts import DraftStore
from mesabot.core.history import AddressBook, ConversationHistory
from mesabot.core.intent_router import (
    ACKNOWLEDGEMENT,
    AFFIRMATIVE,
    CREATE_RESERVATION,
    EXIT,
    GRATITUDE,
    GREETING,
    NEGATIVE,
    IntentRouter,
)
from mesabot.core.parsing import (
    asks_for_name,
    extract_name,
    extract_number,
    find_zone_by_message,
    looks_like_name,
    normalize_address,
)
from mesabot.core.prompt_builder import NamePrompt, NoDraftPrompt, PromptContext
from mesabot.core.schemas import (
    MAX_PARTY_SIZE,
    MIN_PARTY_SIZE,
    Draft,
    DraftStep,
    EditField,
    ReservationInfo,
    ReservationStatus,
    VenueInfo,
)

logger = logging.getLogger(__name__)


@dataclass
class IncomingMessage:
    """Normalized incoming message (common format across all channels)."""

    venue_id: str
    address: str
    text: str
    channel_type: str = "telegram"
    channel_message_id: str = ""
    sender_name: str | None = None
    timestamp: datetime | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def participant(self) -> str:
        return normalize_address(self.address)

    @property
    def conversation_key(self) -> str:
        return conversation_key(self.venue_id, self.participant)


def conversation_key(venue_id: str, participant: str) -> str:
    return f"{venue_id}-{participant}"


class Transport(Protocol):
    async def send(self, venue_id: str, address: str, text: str) -> bool: ...


@dataclass
class _Turn:
    venue: VenueInfo
    key: str
    address: str
    phone: str
    text: str
    intent: str | None


class ReservationEngine:
    def __init__(
        self,
        drafts: DraftStore,
        availability: AvailabilityCache,
        codes: CodeAllocator,
        store,
        generator,
        transport: Transport,
        history: ConversationHistory,
        address_book: AddressBook,
        router: IntentRouter,
        max_invalid_attempts: int = 2,
        completion_grace_seconds: float = 5.0,
    ):
        self.drafts = drafts
        self.availability = availability
        self.codes = codes
        self.store = store
        self.generator = generator
        self.transport = transport
        self.history = history
        self.address_book = address_book
        self.router = router
        self.max_invalid_attempts = max_invalid_attempts
        self.completion_grace_seconds = completion_grace_seconds
        self._venue_locks: dict[str, asyncio.Lock] = {}
        self._cleanup_tasks: dict[str, asyncio.Task] = {}

    # --- entry point ---

    async def handle_turn(self, message: IncomingMessage) -> None:
        phone = message.participant
        key = conversation_key(message.venue_id, phone)

        try:
            await self.address_book.set(message.venue_id, phone, message.address)
        except Exception:
            logger.warning("Failed to cache address for %s", key, exc_info=True)

        venue = await self.store.get_venue(message.venue_id)
        if venue is None:
            logger.warning("Message for unknown venue %s dropped", message.venue_id)
            return
        if not venue.bot_active:
            await self._send_to(venue.id, message.address, messages.BOT_UNAVAILABLE)
            return

        text = message.text.strip()
        turn = _Turn(
            venue=venue,
            key=key,
            address=message.address,
            phone=phone,
            text=text,
            intent=self.router.classify(text),
        )

        draft = await self.drafts.get(key)
        if draft is not None and draft.is_terminal:
            draft = None

        logger.info(
            "Turn %s: intent=%s step=%s", key, turn.intent, draft.step.value if draft else None
        )

        if turn.intent == EXIT:
            await self._handle_exit(turn, draft)
        elif turn.intent == GREETING:
            await self._handle_greeting(turn)
        elif draft is None:
            await self._handle_no_draft(turn)
        elif draft.step == DraftStep.NAME:
            await self._handle_name(turn, draft)
        elif draft.step == DraftStep.PARTY_SIZE:
            await self._handle_party_size(turn, draft)
        elif draft.step == DraftStep.ZONE_SELECTION:
            await self._handle_zone_selection(turn, draft)
        elif draft.step == DraftStep.CONFIRMATION:
            await self._handle_confirmation(turn, draft)
        elif draft.step == DraftStep.EDIT_MENU:
            await self._handle_edit_menu(turn, draft)

    async def shutdown(self) -> None:
        tasks = list(self._cleanup_tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._cleanup_tasks.clear()

    # --- cross-cutting ---

    async def _handle_exit(self, turn: _Turn, draft: Draft | None) -> None:
        if draft is not None:
            await self._discard_draft(turn.key)
            if draft.linked_reservation_id:
                await self.store.update_reservation_status(draft.linked_reservation_id, ReservationStatus.CANCELLED)
                await self._send(turn, messages.reservation_cancelled(None))
            else:
                await self._send(turn, messages.FLOW_CANCELLED)
            return

        active = await self._find_active(turn)
        if active is None:
            await self._send(turn, messages.NOTHING_TO_CANCEL)
            return
        await self.store.update_reservation_status(active.id, ReservationStatus.CANCELLED)
        logger.info("Reservation %s cancelled by customer", active.display_code)
        await self._send(turn, messages.reservation_cancelled(active.display_code))

    async def _handle_greeting(self, turn: _Turn) -> None:
        await self._discard_draft(turn.key)
        await self.history.clear(turn.key)

        active = await self._find_active(turn)
        if active is not None:
            await self.drafts.start_edit_menu(
                turn.key,
                turn.venue.id,
                reservation_id=active.id,
                customer_name=active.customer_name,
                party_size=active.party_size,
                selected_zone=active.zone_name,
            )
            await self._send(turn, messages.edit_menu(active.display_code, active.party_size, active.zone_name))
            return

        await self.drafts.start(turn.key, turn.venue.id)
        await self._converse(turn, NamePrompt(venue_name=turn.venue.name))

    async def _handle_no_draft(self, turn: _Turn) -> None:
        if self.router.matches(turn.text, GRATITUDE) or self.router.matches(turn.text, ACKNOWLEDGEMENT):
            active = await self._find_active(turn)
            if active is not None:
                await self._send(
                    turn,
                    messages.courtesy(
                        confirmed=active.status == ReservationStatus.CONFIRMED,
                        gratitude=self.router.matches(turn.text, GRATITUDE),
                        code=active.display_code,
                    ),
                )
                return

        last_reply = await self.history.last_assistant_message(turn.key)
        if last_reply and asks_for_name(last_reply):
            name = self._name_from(turn)
            if name:
                self._cancel_cleanup(turn.key)
                draft = await self.drafts.start(turn.key, turn.venue.id, customer_name=name)
                await self._send(turn, messages.ask_party_size(draft.customer_name or name))
                return

        snapshot = await self.availability.get(turn.venue.id)
        zones = [zone.name for zone in snapshot.zones] if snapshot else []
        reply = await self._converse(turn, NoDraftPrompt(venue_name=turn.venue.name, zones=zones))
        if reply.action == CREATE_RESERVATION:
            self._cancel_cleanup(turn.key)
            await self.drafts.start(turn.key, turn.venue.id)

    # --- steps ---

    async def _handle_name(self, turn: _Turn, draft: Draft) -> None:
        name = self._name_from(turn)
        if name:
            draft = await self.drafts.set_name(draft, name)
            await self._send(turn, messages.ask_party_size(draft.customer_name or name))
            return
        await self._converse(turn, NamePrompt(venue_name=turn.venue.name))

    async def _handle_party_size(self, turn: _Turn, draft: Draft) -> None:
        corrected = extract_name(turn.text)
        if corrected and not draft.edit_mode:
            draft = await self.drafts.set_name_only(draft, corrected)
            await self._send(turn, messages.name_updated(draft.customer_name or corrected))
            return

        party_size = extract_number(turn.text)
        if party_size is None or not MIN_PARTY_SIZE <= party_size <= MAX_PARTY_SIZE:
            await self._strike(turn, draft, messages.INVALID_PARTY_SIZE)
            return

        snapshot = await self.availability.get(turn.venue.id)
        if snapshot is None:
            await self._send(turn, messages.AVAILABILITY_ERROR)
            return

        zones = AvailabilityCache.filter_by_party_size(snapshot, party_size)
        if not zones:
            logger.info("No zones for %s people in venue %s", party_size, turn.venue.id)
            await self._send(turn, messages.no_tables(party_size))
            return

        if draft.edit_mode and draft.editing_field == EditField.PARTY_SIZE:
            current = (draft.selected_zone or "").casefold()
            if current and current not in {zone.casefold() for zone in zones}:
                logger.info("Zone %s cannot seat %s people in venue %s", draft.selected_zone, party_size, turn.venue.id)
                await self._send(turn, messages.zone_cannot_seat(draft.selected_zone, party_size))
                return
            await self._apply_edit(turn, draft, party_size=party_size)
            return

        await self.drafts.set_party_size(draft, party_size)
        await self._send(turn, messages.zone_options(zones, party_size))

    async def _handle_zone_selection(self, turn: _Turn, draft: Draft) -> None:
        if not draft.party_size:
            logger.warning("Draft %s reached zone selection without party size", turn.key)
            await self._send(turn, messages.RESTART)
            return

        if turn.intent == NEGATIVE:
            await self._discard_draft(turn.key)
            await self._send(turn, messages.EDIT_ABANDONED if draft.edit_mode else messages.FLOW_CANCELLED)
            return

        snapshot = await self.availability.get(turn.venue.id)
        if snapshot is None:
            await self._send(turn, messages.AVAILABILITY_ERROR)
            return

        zones = AvailabilityCache.filter_by_party_size(snapshot, draft.party_size)
        if not zones:
            await self._discard_draft(turn.key)
            await self._send(turn, messages.NO_AVAILABILITY)
            return

        if turn.intent == AFFIRMATIVE:
            # An affirmative only picks a zone when there is nothing to choose between.
            selected = zones[0] if len(zones) == 1 else None
        else:
            selected = find_zone_by_message(turn.text, zones)

        if selected is None:
            await self._strike(turn, draft, messages.invalid_zone(zones))
            return

        if draft.edit_mode and draft.editing_field == EditField.ZONE:
            await self._apply_edit(turn, draft, zone_name=selected)
            return

        draft = await self.drafts.select_zone(draft, selected)
        await self._create_reservation(turn, draft)

    async def _handle_confirmation(self, turn: _Turn, draft: Draft) -> None:
        if not draft.party_size or not draft.selected_zone:
            await self._send(turn, messages.RESTART)
            return
        if turn.intent == AFFIRMATIVE:
            await self._create_reservation(turn, draft)
        elif turn.intent == NEGATIVE:
            await self._discard_draft(turn.key)
            await self._send(turn, messages.FLOW_CANCELLED)
        else:
            await self._send(turn, messages.CONFIRMATION_PROMPT)

    async def _handle_edit_menu(self, turn: _Turn, draft: Draft) -> None:
        choice = turn.text.strip()
        if choice == "1":
            await self.drafts.start_edit(draft, EditField.PARTY_SIZE)
            await self._send(turn, messages.EDIT_PARTY_SIZE_PROMPT)
        elif choice == "2":
            await self._start_zone_edit(turn, draft)
        elif choice == "3" and draft.linked_reservation_id:
            await self._discard_draft(turn.key)
            await self.store.update_reservation_status(draft.linked_reservation_id, ReservationStatus.CANCELLED)
            await self._send(turn, messages.reservation_cancelled(None))
        else:
            active = await self._find_active(turn)
            if active is None:
                await self._discard_draft(turn.key)
                await self._send(turn, messages.NOTHING_TO_CANCEL)
                return
            await self._send(turn, messages.edit_menu(active.display_code, active.party_size, active.zone_name))

    async def _start_zone_edit(self, turn: _Turn, draft: Draft) -> None:
        if not draft.party_size:
            await self._send(turn, messages.RESTART)
            return
        snapshot = await self.availability.get(turn.venue.id)
        if snapshot is None:
            await self._send(turn, messages.AVAILABILITY_ERROR)
            return
        zones = AvailabilityCache.filter_by_party_size(snapshot, draft.party_size)
        if not zones:
            await self._discard_draft(turn.key)
            await self._send(turn, messages.NO_AVAILABILITY)
            return
        await self.drafts.start_edit(draft, EditField.ZONE)
        await self._send(turn, messages.zone_options(zones, draft.party_size))

    # --- store side effects ---

    async def _create_reservation(self, turn: _Turn, draft: Draft) -> None:
        venue = turn.venue
        status = ReservationStatus.CONFIRMED if venue.auto_accept_reservations else ReservationStatus.PENDING

        try:
            async with self._venue_lock(venue.id):
                customer = await self.store.upsert_customer(venue.id, draft.customer_name or "Cliente", turn.phone)
                code = await self.codes.ensure_unique(venue.id, self.codes.allocate(draft.customer_name, turn.phone))
                reservation = await self.store.insert_reservation(
                    venue.id,
                    customer.id,
                    draft.party_size,
                    draft.selected_zone,
                    code,
                    status,
                )
        except Exception:
            logger.exception("Reservation creation failed for %s", turn.key)
            await self._send(turn, messages.CREATION_FAILED)
            return

        await self.drafts.mark_completed(draft)
        self._schedule_cleanup(turn.key)
        await self._send(
            turn,
            messages.reservation_created(
                confirmed=status == ReservationStatus.CONFIRMED,
                name=draft.customer_name,
                party_size=draft.party_size or reservation.party_size,
                zone=draft.selected_zone,
                code=reservation.display_code,
                venue_type=venue.venue_type,
            ),
        )

    async def _apply_edit(
        self,
        turn: _Turn,
        draft: Draft,
        party_size: int | None = None,
        zone_name: str | None = None,
    ) -> None:
        await self._discard_draft(turn.key)
        if not draft.linked_reservation_id:
            await self._send(turn, messages.RESTART)
            return
        try:
            updated = await self.store.update_reservation(
                draft.linked_reservation_id,
                party_size=party_size,
                zone_name=zone_name,
            )
        except Exception:
            logger.exception("Reservation update failed for %s", turn.key)
            updated = None
        if updated is None:
            await self._send(turn, messages.UPDATE_FAILED)
            return
        logger.info("Reservation %s edited (party_size=%s, zone=%s)", updated.display_code, party_size, zone_name)
        await self._send(turn, messages.reservation_updated(updated.display_code, updated.party_size, updated.zone_name))

    async def _find_active(self, turn: _Turn) -> ReservationInfo | None:
        try:
            return await self.store.find_active_today(turn.venue.id, turn.phone)
        except Exception:
            logger.exception("Active reservation lookup failed for %s", turn.key)
            return None

    # --- helpers ---

    def _name_from(self, turn: _Turn) -> str | None:
        name = extract_name(turn.text)
        if name:
            return name
        if turn.intent is None and looks_like_name(turn.text):
            return turn.text
        return None

    async def _strike(self, turn: _Turn, draft: Draft, reprompt: str) -> None:
        attempts = await self.drafts.record_invalid_attempt(draft)
        if attempts >= self.max_invalid_attempts:
            logger.info("Draft %s dropped after %s invalid answers", turn.key, attempts)
            await self._discard_draft(turn.key)
            await self._send(turn, messages.EDIT_TOO_MANY_ATTEMPTS if draft.edit_mode else messages.TOO_MANY_ATTEMPTS)
            return
        await self._send(turn, reprompt)

    async def _converse(self, turn: _Turn, context: PromptContext):
        history = await self.history.get(turn.key)
        reply = await self.generator.generate(turn.text, history, context)
        await self.history.append(
            turn.key,
            {"role": "user", "content": turn.text},
            {"role": "assistant", "content": reply.text},
        )
        await self._send(turn, reply.text)
        return reply

    async def _discard_draft(self, key: str) -> None:
        self._cancel_cleanup(key)
        await self.drafts.delete(key)

    def _venue_lock(self, venue_id: str) -> asyncio.Lock:
        return self._venue_locks.setdefault(venue_id, asyncio.Lock())

    def _schedule_cleanup(self, key: str) -> None:
        self._cancel_cleanup(key)
        task = asyncio.create_task(self._delete_completed_later(key))
        self._cleanup_tasks[key] = task
        task.add_done_callback(lambda t: self._forget_cleanup(key, t))

    def _cancel_cleanup(self, key: str) -> None:
        task = self._cleanup_tasks.pop(key, None)
        if task is not None and not task.done():
            task.cancel()

    def _forget_cleanup(self, key: str, task: asyncio.Task) -> None:
        if self._cleanup_tasks.get(key) is task:
            del self._cleanup_tasks[key]

    async def _delete_completed_later(self, key: str) -> None:
        await asyncio.sleep(self.completion_grace_seconds)
        try:
            draft = await self.drafts.get(key)
            if draft is not None and draft.step == DraftStep.COMPLETED:
                await self.drafts.delete(key)
                logger.debug("Completed draft %s removed", key)
        except Exception:
            logger.exception("Failed to remove completed draft %s", key)

    async def _send(self, turn: _Turn, text: str) -> bool:
        return await self._send_to(turn.venue.id, turn.address, text)

    async def _send_to(self, venue_id: str, address: str, text: str) -> bool:
        sent = await self.transport.send(venue_id, address, text)
        if not sent:
            logger.error("Failed to deliver reply to %s (venue %s)", address, venue_id)
        return sent
