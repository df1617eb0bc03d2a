"""Reply templates sent by the deterministic steps of the reservation flow."""

from __future__ import annotations

BOT_UNAVAILABLE = (
    "Lo siento, nuestro servicio de mensajería no está disponible en este momento. "
    "Por favor intenta más tarde."
)

INVALID_PARTY_SIZE = "❌ Por favor indica con un *número* cuántas personas son.\n\nEjemplo: 2, 4, 6, etc."

AVAILABILITY_ERROR = (
    "Lo siento, estoy teniendo problemas para obtener las zonas disponibles. Por favor intenta de nuevo."
)

RESTART = "Lo siento, hubo un problema. Por favor vuelve a empezar diciendo HOLA."

NO_AVAILABILITY = (
    "Lo siento, en este momento ya no quedan zonas disponibles para tu reserva. "
    "Puedes intentarlo más tarde diciendo HOLA."
)

CREATION_FAILED = (
    "❌ Lo siento, hubo un problema al crear tu reserva.\n\n"
    "Responde *SÍ* para intentarlo de nuevo o *NO* para cancelar."
)

CONFIRMATION_PROMPT = "¿Quieres que intente crear la reserva de nuevo? (Responde SÍ o NO)"

TOO_MANY_ATTEMPTS = (
    "No pude entender tu respuesta, así que cancelé la reserva en curso. "
    "Cuando quieras, vuelve a empezar diciendo HOLA."
)

FLOW_CANCELLED = "Listo, cancelé la reserva en curso. Si necesitas algo más, escribe HOLA."

NOTHING_TO_CANCEL = "No encontré ninguna reserva activa para cancelar. Si quieres reservar, escribe HOLA."

EDIT_PARTY_SIZE_PROMPT = "¿Para cuántas personas en total será la reserva ahora?\n\nEjemplo: 2, 4, 6, etc."

EDIT_ABANDONED = "Listo, tu reserva queda sin cambios. Si necesitas algo más, escribe HOLA."

EDIT_TOO_MANY_ATTEMPTS = (
    "No pude entender tu respuesta, así que tu reserva queda sin cambios. "
    "Cuando quieras modificarla, escribe HOLA."
)

UPDATE_FAILED = "❌ Lo siento, no pude modificar tu reserva. Por favor intenta de nuevo más tarde."


def ask_party_size(name: str) -> str:
    return f"✅ Perfecto, *{name}*!\n\n¿Para cuántas personas es la reserva?\n\nEjemplo: 2, 4, 6, etc."


def name_updated(name: str) -> str:
    return f"Anotado, *{name}*. ¿Para cuántas personas es la reserva?"


def no_tables(party_size: int) -> str:
    return (
        f"Lo siento, no tenemos mesas disponibles para {party_size} personas en este momento. "
        "Puedes indicar otra cantidad de personas."
    )


def zone_cannot_seat(zone: str, party_size: int) -> str:
    return (
        f"Lo siento, en la zona *{zone}* no hay mesas para {party_size} personas. "
        "Puedes indicar otra cantidad de personas o cambiar de zona desde el menú diciendo HOLA."
    )


def _numbered(zones: list[str]) -> str:
    return "\n".join(f"{idx}. *{zone}*" for idx, zone in enumerate(zones, 1))


def zone_options(zones: list[str], party_size: int) -> str:
    if len(zones) == 1:
        return (
            f"✅ Perfecto! Tenemos disponible la zona *{zones[0]}* para {party_size} personas.\n\n"
            "¿Confirmas esta zona? (Responde SÍ o NO)"
        )
    return (
        f"✅ Tenemos {len(zones)} zonas disponibles para {party_size} personas:\n\n"
        f"{_numbered(zones)}\n\n"
        "Responde con el *número* o *nombre* de la zona que prefieres."
    )


def invalid_zone(zones: list[str]) -> str:
    if len(zones) == 1:
        return f"❌ No entendí tu respuesta. ¿Confirmas la zona *{zones[0]}*? (Responde SÍ o NO)"
    return (
        "❌ No encontré esa zona. Por favor elige una de estas opciones:\n\n"
        f"{_numbered(zones)}\n\n"
        "Responde con el *número* o *nombre* de la zona."
    )


def reservation_created(
    *,
    confirmed: bool,
    name: str | None,
    party_size: int,
    zone: str | None,
    code: str,
    venue_type: str,
) -> str:
    details = (
        f"👤 Nombre: {name or 'Cliente'}\n"
        f"👥 Personas: {party_size}\n"
        f"🏢 Zona: {zone or 'Asignada'}\n"
        f"📋 Código: *{code}*"
    )
    if confirmed:
        return (
            f"✅ *¡Reserva CONFIRMADA!*\n\n{details}\n\n"
            f"✨ Tu {venue_type} te espera! Puedes dirigirte cuando quieras.\n\n"
            "Si necesitas cancelar, responde CANCELAR."
        )
    return (
        f"⏳ *Reserva RECIBIDA*\n\n{details}\n\n"
        f"⏰ Le notificaremos cuando el {venue_type} confirme su reserva.\n\n"
        "Si necesitas cancelar, responde CANCELAR."
    )


def reservation_confirmed_notice(code: str, zone: str, venue_type: str) -> str:
    return (
        "✅ *¡Tu reserva está CONFIRMADA!*\n\n"
        f"📋 Código: *{code}*\n"
        f"🏢 Zona: {zone}\n\n"
        f"✨ Tu {venue_type} te espera! Puedes dirigirte cuando quieras."
    )


def reservation_cancelled(code: str | None) -> str:
    ref = f" *{code}*" if code else ""
    return f"Tu reserva{ref} fue cancelada. Si quieres hacer una nueva, escribe HOLA."


def edit_menu(code: str, party_size: int, zone: str | None) -> str:
    return (
        f"Ya tienes una reserva activa para hoy (código *{code}*, {party_size} personas, "
        f"zona {zone or 'asignada'}).\n\n"
        "¿Qué quieres hacer?\n"
        "1. Cambiar la cantidad de personas\n"
        "2. Cambiar la zona\n"
        "3. Cancelar la reserva"
    )


def reservation_updated(code: str, party_size: int, zone: str | None) -> str:
    return (
        f"✅ Listo, actualicé tu reserva *{code}*: {party_size} personas, zona {zone or 'asignada'}."
    )


def courtesy(*, confirmed: bool, gratitude: bool, code: str | None) -> str:
    ref = f" (código *{code}*)" if code else ""
    if confirmed:
        opener = "¡De nada! 🙌" if gratitude else "¡Genial! 🙌"
        return f"{opener}\n\nTu reserva{ref} ya está confirmada. Si necesitas algo más, estoy para ayudarte."
    opener = "¡De nada! 🙌" if gratitude else "¡Perfecto! 🙌"
    return (
        f"{opener}\n\nTu reserva{ref} sigue pendiente de confirmación. "
        "Apenas el restaurante la confirme, te avisamos por acá."
    )
