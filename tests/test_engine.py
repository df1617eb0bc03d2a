from __future__ import annotations

import asyncio

import pytest

from mesabot.core import messages
from mesabot.core.intent_router import CREATE_RESERVATION
from mesabot.core.prompt_builder import NamePrompt, NoDraftPrompt
from mesabot.core.schemas import DraftStep, EditField, ReservationStatus
from tests.fakes import PHONE, VENUE_ID, FakeGenerator, FakeReservationStore, make_engine, seed_venue

KEY = f"{VENUE_ID}-{PHONE}"


def _seeded(**venue_kwargs) -> FakeReservationStore:
    store = FakeReservationStore()
    seed_venue(store, **venue_kwargs)
    return store


async def _reach_zone_selection(h, name: str = "Juan Perez", party_size: str = "4") -> None:
    await h.say("hola")
    await h.say(name)
    await h.say(party_size)


@pytest.mark.asyncio
async def test_full_flow_creates_pending_reservation():
    h = make_engine(_seeded())

    reply = await h.say("hola")
    assert reply == h.generator.text
    assert isinstance(h.generator.calls[-1][2], NamePrompt)
    assert (await h.draft()).step == DraftStep.NAME

    reply = await h.say("juan perez")
    assert "*Juan Perez*" in reply
    draft = await h.draft()
    assert draft.step == DraftStep.PARTY_SIZE
    assert draft.customer_name == "Juan Perez"

    reply = await h.say("4")
    assert "Patio" in reply
    assert "Salon" not in reply
    assert (await h.draft()).step == DraftStep.ZONE_SELECTION

    reply = await h.say("si")
    assert "Reserva RECIBIDA" in reply
    assert "J455" in reply
    assert "Personas: 4" in reply

    [reservation] = h.store.reservations.values()
    assert reservation.status == ReservationStatus.PENDING
    assert reservation.party_size == 4
    assert reservation.zone_name == "Patio"
    assert reservation.display_code == "J455"
    assert (await h.draft()).step == DraftStep.COMPLETED

    await h.engine.shutdown()


@pytest.mark.asyncio
async def test_auto_accept_venue_confirms_immediately():
    h = make_engine(_seeded(auto_accept_reservations=True))
    await _reach_zone_selection(h)

    reply = await h.say("dale")

    assert "CONFIRMADA" in reply
    [reservation] = h.store.reservations.values()
    assert reservation.status == ReservationStatus.CONFIRMED
    await h.engine.shutdown()


@pytest.mark.asyncio
async def test_zone_selected_by_ordinal_among_several():
    h = make_engine(_seeded())
    await h.say("hola")
    await h.say("Ana")

    reply = await h.say("2")
    assert "1. *Patio*" in reply
    assert "2. *Salon*" in reply

    reply = await h.say("2")
    assert "Zona: Salon" in reply
    [reservation] = h.store.reservations.values()
    assert reservation.zone_name == "Salon"
    assert reservation.display_code == "A455"
    await h.engine.shutdown()


@pytest.mark.asyncio
async def test_zone_selected_by_name():
    h = make_engine(_seeded())
    await _reach_zone_selection(h, party_size="2")

    reply = await h.say("en el patio")

    assert "Zona: Patio" in reply
    await h.engine.shutdown()


@pytest.mark.asyncio
async def test_affirmative_with_several_zones_is_an_invalid_answer():
    h = make_engine(_seeded())
    await _reach_zone_selection(h, party_size="2")

    reply = await h.say("si")

    assert reply == messages.invalid_zone(["Patio", "Salon"])
    draft = await h.draft()
    assert draft.step == DraftStep.ZONE_SELECTION
    assert draft.invalid_attempts == 1
    assert h.store.reservations == {}


@pytest.mark.asyncio
async def test_two_unmatched_zone_answers_drop_the_draft():
    h = make_engine(_seeded())
    await _reach_zone_selection(h, party_size="2")

    reply = await h.say("terraza")
    assert reply == messages.invalid_zone(["Patio", "Salon"])
    assert (await h.draft()).invalid_attempts == 1

    reply = await h.say("jardin")
    assert reply == messages.TOO_MANY_ATTEMPTS
    assert await h.draft() is None
    assert h.store.reservations == {}


@pytest.mark.asyncio
async def test_negative_in_zone_selection_cancels_flow():
    h = make_engine(_seeded())
    await _reach_zone_selection(h)

    reply = await h.say("no")

    assert reply == messages.FLOW_CANCELLED
    assert await h.draft() is None


@pytest.mark.asyncio
async def test_zone_disappearing_ends_flow_with_no_availability():
    h = make_engine(_seeded())
    await _reach_zone_selection(h)
    h.store.tables[VENUE_ID][0]["occupied"] = True
    await h.engine.availability.invalidate(VENUE_ID)

    reply = await h.say("si")

    assert reply == messages.NO_AVAILABILITY
    assert await h.draft() is None


@pytest.mark.asyncio
async def test_two_invalid_party_sizes_drop_the_draft():
    h = make_engine(_seeded())
    await h.say("hola")
    await h.say("Juan")

    reply = await h.say("muchos")
    assert reply == messages.INVALID_PARTY_SIZE
    assert (await h.draft()).invalid_attempts == 1

    reply = await h.say("varios")
    assert reply == messages.TOO_MANY_ATTEMPTS
    assert await h.draft() is None


@pytest.mark.asyncio
async def test_out_of_range_party_size_is_rejected():
    h = make_engine(_seeded())
    await h.say("hola")
    await h.say("Juan")

    reply = await h.say("somos 60")

    assert reply == messages.INVALID_PARTY_SIZE
    draft = await h.draft()
    assert draft.step == DraftStep.PARTY_SIZE
    assert draft.party_size is None


@pytest.mark.asyncio
async def test_party_size_without_tables_keeps_step():
    h = make_engine(_seeded())
    await h.say("hola")
    await h.say("Juan")

    reply = await h.say("10")

    assert reply == messages.no_tables(10)
    draft = await h.draft()
    assert draft.step == DraftStep.PARTY_SIZE
    assert draft.invalid_attempts == 0


@pytest.mark.asyncio
async def test_availability_failure_reports_error():
    store = _seeded()
    h = make_engine(store)
    await h.say("hola")
    await h.say("Juan")
    store.fail_listing = True

    reply = await h.say("4")

    assert reply == messages.AVAILABILITY_ERROR
    assert (await h.draft()).step == DraftStep.PARTY_SIZE


@pytest.mark.asyncio
async def test_name_correction_at_party_size_step():
    h = make_engine(_seeded())
    await h.say("hola")
    await h.say("Juan")

    reply = await h.say("perdón, me llamo Pedro Gomez")

    assert reply == messages.name_updated("Pedro Gomez")
    draft = await h.draft()
    assert draft.customer_name == "Pedro Gomez"
    assert draft.step == DraftStep.PARTY_SIZE


@pytest.mark.asyncio
async def test_creation_failure_keeps_confirmation_step_and_retries():
    store = _seeded()
    h = make_engine(store)
    await _reach_zone_selection(h)
    store.fail_insert = True

    reply = await h.say("si")
    assert reply == messages.CREATION_FAILED
    draft = await h.draft()
    assert draft.step == DraftStep.CONFIRMATION
    assert draft.selected_zone == "Patio"

    reply = await h.say("que?")
    assert reply == messages.CONFIRMATION_PROMPT

    store.fail_insert = False
    reply = await h.say("si")
    assert "J455" in reply
    assert len(store.reservations) == 1
    await h.engine.shutdown()


@pytest.mark.asyncio
async def test_display_code_collision_swaps_initial():
    store = _seeded()
    store.add_reservation(VENUE_ID, "5491100000455", "Julia", "J455")
    h = make_engine(store)
    await _reach_zone_selection(h)

    await h.say("si")

    codes = sorted(r.display_code for r in store.reservations.values())
    assert len(codes) == 2
    new_code = [c for c in codes if c != "J455"][0]
    assert new_code.endswith("455")
    assert new_code[0] != "J"
    await h.engine.shutdown()


@pytest.mark.asyncio
async def test_completed_draft_removed_after_grace_period():
    h = make_engine(_seeded(), completion_grace_seconds=0.01)
    await _reach_zone_selection(h)
    await h.say("si")
    assert (await h.draft()).step == DraftStep.COMPLETED

    await asyncio.sleep(0.05)

    assert await h.draft() is None
    await h.engine.shutdown()


@pytest.mark.asyncio
async def test_gratitude_after_reservation_gets_courtesy_reply():
    h = make_engine(_seeded())
    await _reach_zone_selection(h)
    await h.say("si")
    calls = len(h.generator.calls)

    reply = await h.say("muchas gracias")

    assert reply == messages.courtesy(confirmed=False, gratitude=True, code="J455")
    assert len(h.generator.calls) == calls
    assert (await h.draft()).step == DraftStep.COMPLETED
    await h.engine.shutdown()


@pytest.mark.asyncio
async def test_acknowledgement_with_confirmed_reservation():
    store = _seeded()
    store.add_reservation(VENUE_ID, PHONE, "Juan", "J455", status=ReservationStatus.CONFIRMED)
    h = make_engine(store)

    reply = await h.say("ok")

    assert reply == messages.courtesy(confirmed=True, gratitude=False, code="J455")
    assert await h.draft() is None


@pytest.mark.asyncio
async def test_exit_cancels_draft_in_progress():
    h = make_engine(_seeded())
    await h.say("hola")
    await h.say("Juan")

    reply = await h.say("cancelar")

    assert reply == messages.FLOW_CANCELLED
    assert await h.draft() is None


@pytest.mark.asyncio
async def test_exit_without_draft_cancels_active_reservation():
    store = _seeded()
    reservation = store.add_reservation(VENUE_ID, PHONE, "Juan", "J455")
    h = make_engine(store)

    reply = await h.say("quiero cancelar mi reserva")

    assert reply == messages.reservation_cancelled("J455")
    assert store.reservations[reservation.id].status == ReservationStatus.CANCELLED


@pytest.mark.asyncio
async def test_exit_with_nothing_to_cancel():
    h = make_engine(_seeded())

    reply = await h.say("cancelar")

    assert reply == messages.NOTHING_TO_CANCEL


@pytest.mark.asyncio
async def test_greeting_with_active_reservation_opens_edit_menu():
    store = _seeded()
    reservation = store.add_reservation(
        VENUE_ID, PHONE, "Juan", "J455", status=ReservationStatus.CONFIRMED, zone_name="Patio"
    )
    h = make_engine(store)

    reply = await h.say("Hola!")

    assert reply == messages.edit_menu("J455", 2, "Patio")
    draft = await h.draft()
    assert draft.step == DraftStep.EDIT_MENU
    assert draft.edit_mode is True
    assert draft.linked_reservation_id == reservation.id
    assert h.generator.calls == []


@pytest.mark.asyncio
async def test_edit_party_size_updates_reservation():
    store = _seeded()
    reservation = store.add_reservation(VENUE_ID, PHONE, "Juan", "J455", zone_name="Patio")
    h = make_engine(store)
    await h.say("hola")

    reply = await h.say("1")
    assert reply == messages.EDIT_PARTY_SIZE_PROMPT
    draft = await h.draft()
    assert draft.step == DraftStep.PARTY_SIZE
    assert draft.editing_field == EditField.PARTY_SIZE

    reply = await h.say("4")
    assert reply == messages.reservation_updated("J455", 4, "Patio")
    assert store.reservations[reservation.id].party_size == 4
    assert await h.draft() is None


@pytest.mark.asyncio
async def test_edit_zone_updates_reservation():
    store = _seeded()
    reservation = store.add_reservation(VENUE_ID, PHONE, "Juan", "J455", zone_name="Patio")
    h = make_engine(store)
    await h.say("hola")

    reply = await h.say("2")
    assert reply == messages.zone_options(["Patio", "Salon"], 2)
    assert (await h.draft()).editing_field == EditField.ZONE

    reply = await h.say("Salon")
    assert reply == messages.reservation_updated("J455", 2, "Salon")
    assert store.reservations[reservation.id].zone_name == "Salon"


@pytest.mark.asyncio
async def test_edit_party_size_beyond_current_zone_keeps_reservation():
    store = _seeded()
    reservation = store.add_reservation(VENUE_ID, PHONE, "Juan", "J455", zone_name="Salon")
    h = make_engine(store)
    await h.say("hola")
    await h.say("1")

    reply = await h.say("4")

    assert reply == messages.zone_cannot_seat("Salon", 4)
    assert store.reservations[reservation.id].party_size == 2
    draft = await h.draft()
    assert draft.editing_field == EditField.PARTY_SIZE
    assert draft.invalid_attempts == 0

    reply = await h.say("1")
    assert reply == messages.reservation_updated("J455", 1, "Salon")
    assert store.reservations[reservation.id].party_size == 1


@pytest.mark.asyncio
async def test_declining_zone_edit_leaves_reservation_unchanged():
    store = _seeded()
    reservation = store.add_reservation(VENUE_ID, PHONE, "Juan", "J455", zone_name="Patio")
    h = make_engine(store)
    await h.say("hola")
    await h.say("2")

    reply = await h.say("no")

    assert reply == messages.EDIT_ABANDONED
    assert await h.draft() is None
    assert store.reservations[reservation.id].status == ReservationStatus.PENDING
    assert store.reservations[reservation.id].zone_name == "Patio"


@pytest.mark.asyncio
async def test_two_invalid_edit_answers_leave_reservation_unchanged():
    store = _seeded()
    reservation = store.add_reservation(VENUE_ID, PHONE, "Juan", "J455", zone_name="Patio")
    h = make_engine(store)
    await h.say("hola")
    await h.say("1")

    await h.say("muchos")
    reply = await h.say("varios")

    assert reply == messages.EDIT_TOO_MANY_ATTEMPTS
    assert await h.draft() is None
    assert store.reservations[reservation.id].status == ReservationStatus.PENDING
    assert store.reservations[reservation.id].party_size == 2


@pytest.mark.asyncio
async def test_edit_menu_cancel_option():
    store = _seeded()
    reservation = store.add_reservation(VENUE_ID, PHONE, "Juan", "J455")
    h = make_engine(store)
    await h.say("hola")

    reply = await h.say("3")

    assert reply == messages.reservation_cancelled(None)
    assert store.reservations[reservation.id].status == ReservationStatus.CANCELLED
    assert await h.draft() is None


@pytest.mark.asyncio
async def test_name_after_assistant_asked_starts_draft():
    h = make_engine(_seeded())
    await h.history.append(KEY, {"role": "assistant", "content": "¡Claro! ¿Cuál es tu nombre?"})

    reply = await h.say("Maria")

    assert reply == messages.ask_party_size("Maria")
    draft = await h.draft()
    assert draft.step == DraftStep.PARTY_SIZE
    assert draft.customer_name == "Maria"


@pytest.mark.asyncio
async def test_booking_request_without_draft_starts_one():
    generator = FakeGenerator(text="¡Claro! ¿A nombre de quién?", action=CREATE_RESERVATION)
    h = make_engine(_seeded(), generator=generator)

    reply = await h.say("quiero reservar una mesa")

    assert reply == generator.text
    context = generator.calls[-1][2]
    assert isinstance(context, NoDraftPrompt)
    assert sorted(context.zones) == ["Patio", "Salon"]
    assert (await h.draft()).step == DraftStep.NAME
    history = await h.history.get(KEY)
    assert [m["role"] for m in history] == ["user", "assistant"]


@pytest.mark.asyncio
async def test_small_talk_without_action_does_not_start_draft():
    generator = FakeGenerator(text="Abrimos todos los días.", action=None)
    h = make_engine(_seeded(), generator=generator)

    await h.say("a qué hora abren?")

    assert await h.draft() is None


@pytest.mark.asyncio
async def test_inactive_bot_answers_unavailable():
    h = make_engine(_seeded(bot_active=False))

    reply = await h.say("hola")

    assert reply == messages.BOT_UNAVAILABLE
    assert await h.draft() is None


@pytest.mark.asyncio
async def test_unknown_venue_is_dropped():
    h = make_engine(FakeReservationStore())

    await h.engine.handle_turn(h.message("hola"))

    assert h.transport.sent == []


@pytest.mark.asyncio
async def test_address_is_cached_and_used_for_replies():
    h = make_engine(_seeded())
    address = f"{PHONE}:3@s.whatsapp.net"

    await h.engine.handle_turn(h.message("hola", address=address))

    assert await h.address_book.get(VENUE_ID, PHONE) == address
    assert h.transport.sent[-1][1] == address
    assert (await h.draft()).step == DraftStep.NAME
