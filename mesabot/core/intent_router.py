"""
Intent Router — table-driven keyword / regex classification.

Usage:
    router = IntentRouter(DEFAULT_INTENTS)
    router.classify("¡Hola!")          # → "GREETING"
    router.matches("ok gracias", GRATITUDE)  # → True

Texts are compared after normalization (lowercase, no accents, no
punctuation), so rules are written without accents.
"""

from __future__ import annotations

import re

from mesabot.core.parsing import normalize_text
from mesabot.core.schemas import IntentConfig

EXIT = "EXIT"
GREETING = "GREETING"
AFFIRMATIVE = "AFFIRMATIVE"
NEGATIVE = "NEGATIVE"
GRATITUDE = "GRATITUDE"
ACKNOWLEDGEMENT = "ACKNOWLEDGEMENT"

CREATE_RESERVATION = "CREATE_RESERVATION"

DEFAULT_INTENTS: list[IntentConfig] = [
    IntentConfig(
        id=EXIT,
        priority=10,
        markers=["cancelar", "cancela la reserva", "anular", "descartar", "no voy"],
        patterns=[r"(salir|cancela|stop)"],
    ),
    IntentConfig(
        id=GREETING,
        priority=20,
        patterns=[r"(hola|holis|buenas|buen dia|buenos dias|buenas tardes|buenas noches|hey|hello|hi)\b.*"],
    ),
    IntentConfig(id=AFFIRMATIVE, priority=30, patterns=[r"(si|yes|ok|dale|confirmo|confirmar)"]),
    IntentConfig(id=NEGATIVE, priority=30, patterns=[r"(no|nop|nope|no gracias|negativo)"]),
    IntentConfig(
        id=GRATITUDE,
        priority=40,
        patterns=[
            r"(muchas\s+)?gracias(\s+totales)?",
            r"gracias\s+por\s+todo",
            r"thank(s|\s+you)",
            r"mil\s+gracias",
            r"genial\s+gracias",
            r"ok\s+gracias",
            r"dale\s+gracias",
        ],
    ),
    IntentConfig(
        id=ACKNOWLEDGEMENT,
        priority=50,
        patterns=[
            r"(ok|okay|okey)",
            r"okis",
            r"dale",
            r"genial",
            r"perfecto",
            r"listo",
            r"de\s+una",
            r"de\s+diez",
            r"buenisim[oa]+",
            r"excelente",
            r"joya",
            r"barbaro",
        ],
    ),
]

# Action inference for generator replies that carry no explicit action tag.
DEFAULT_ACTIONS: list[IntentConfig] = [
    IntentConfig(id=CREATE_RESERVATION, priority=1, markers=["reserv", "mesa", "agendar", "apartar"]),
    IntentConfig(
        id="UPDATE_RESERVATION",
        priority=2,
        markers=["cambiar", "modificar", "actualizar", "otra zona", "mas personas", "menos personas"],
    ),
    IntentConfig(id="CHECK_STATUS", priority=4, markers=["estado", "posicion", "cuanto falta", "cuando me toca"]),
    IntentConfig(id="CANCEL", priority=8, markers=["cancelar", "no voy", "descartar", "anular"]),
    IntentConfig(
        id="INFO_REQUEST",
        priority=9,
        markers=["informacion", "ayuda", "horario", "direccion", "donde queda", "telefono", "contacto"],
    ),
]


class IntentRouter:
    """
    Classifies a text with the first matching rule.

    Rules are checked in priority order (lower number = higher priority). A
    rule matches when one of its markers is a substring of the normalized
    text, or one of its patterns matches the whole normalized text.
    """

    def __init__(self, intents: list[IntentConfig]):
        self.intents = sorted(intents, key=lambda i: i.priority)
        self._compiled: dict[str, list[re.Pattern]] = {
            intent.id: [re.compile(p) for p in intent.patterns] for intent in self.intents
        }

    def classify(self, text: str) -> str | None:
        normalized = normalize_text(text)
        if not normalized:
            return None
        for intent in self.intents:
            if self._matches(normalized, intent):
                return intent.id
        return None

    def matches(self, text: str, intent_id: str) -> bool:
        """True if `text` satisfies the rule `intent_id`, regardless of priority."""
        intent = self.get_intent_config(intent_id)
        if intent is None:
            return False
        normalized = normalize_text(text)
        return bool(normalized) and self._matches(normalized, intent)

    def get_intent_config(self, intent_id: str) -> IntentConfig | None:
        """Return the full IntentConfig for a given intent ID, or None."""
        for intent in self.intents:
            if intent.id == intent_id:
                return intent
        return None

    def _matches(self, normalized: str, intent: IntentConfig) -> bool:
        if any(normalize_text(marker) in normalized for marker in intent.markers):
            return True
        return any(pattern.fullmatch(normalized) for pattern in self._compiled[intent.id])
