from __future__ import annotations

import pytest

from mesabot.core.intent_router import (
    ACKNOWLEDGEMENT,
    AFFIRMATIVE,
    CREATE_RESERVATION,
    DEFAULT_ACTIONS,
    DEFAULT_INTENTS,
    EXIT,
    GRATITUDE,
    GREETING,
    NEGATIVE,
    IntentRouter,
)
from mesabot.core.schemas import IntentConfig


@pytest.fixture
def router() -> IntentRouter:
    return IntentRouter(DEFAULT_INTENTS)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("¡Hola!", GREETING),
        ("Buenas tardes, quería reservar", GREETING),
        ("Buen día", GREETING),
        ("Sí", AFFIRMATIVE),
        ("OK", AFFIRMATIVE),
        ("confirmo", AFFIRMATIVE),
        ("No", NEGATIVE),
        ("no gracias", NEGATIVE),
        ("Muchas gracias!", GRATITUDE),
        ("genial gracias", GRATITUDE),
        ("perfecto", ACKNOWLEDGEMENT),
        ("buenísimo", ACKNOWLEDGEMENT),
        ("cancelar", EXIT),
        ("mejor anular todo", EXIT),
        ("al final no voy", EXIT),
        ("stop", EXIT),
        ("Juan Perez", None),
        ("4", None),
        ("", None),
        ("?!", None),
    ],
)
def test_classify(router, text, expected):
    assert router.classify(text) == expected


def test_exit_wins_over_greeting(router):
    assert router.classify("hola, quiero cancelar") == EXIT


def test_matches_ignores_priority(router):
    assert router.classify("ok") == AFFIRMATIVE
    assert router.matches("ok", ACKNOWLEDGEMENT)
    assert router.matches("ok gracias", GRATITUDE)
    assert not router.matches("hola", GRATITUDE)


def test_matches_unknown_intent_is_false(router):
    assert router.matches("hola", "NOPE") is False


def test_get_intent_config(router):
    config = router.get_intent_config(EXIT)
    assert config is not None
    assert config.priority == 10
    assert router.get_intent_config("NOPE") is None


def test_custom_rules_are_sorted_by_priority():
    router = IntentRouter(
        [
            IntentConfig(id="LOW", priority=90, markers=["mesa"]),
            IntentConfig(id="HIGH", priority=1, markers=["mesa para"]),
        ]
    )
    assert router.classify("una mesa para dos") == "HIGH"
    assert router.classify("una mesa") == "LOW"


def test_default_actions_infer_create_reservation():
    router = IntentRouter(DEFAULT_ACTIONS)
    assert router.classify("Quiero reservar una mesa") == CREATE_RESERVATION
    assert router.classify("¿Cuál es el horario?") == "INFO_REQUEST"
