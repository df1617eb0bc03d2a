from __future__ import annotations

from mesabot.core.prompt_builder import NamePrompt, NoDraftPrompt, PromptBuilder
from mesabot.core.schemas import AgentConfig, AgentIdentity, AgentRule, LLMConfig


def _agent(rules=None) -> AgentConfig:
    return AgentConfig(
        id="a1",
        name="Asistente",
        identity=AgentIdentity(role="Asistente de reservas de {venue_name}.", persona="Amable"),
        rules=rules or [],
        llm=LLMConfig(),
    )


def test_prompt_builder_includes_sections():
    agent = _agent(rules=[AgentRule(id="r1", priority="critical", description="No inventes zonas")])

    prompt = PromptBuilder.build(agent, NamePrompt(venue_name="La Parrilla"))

    assert "## ROLE\nAsistente de reservas de La Parrilla." in prompt
    assert "## STYLE" in prompt
    assert "## CRITICAL RULES" in prompt
    assert "[CRITICAL] No inventes zonas" in prompt
    assert "## CURRENT CONTEXT\nPaso actual: name." in prompt
    assert "[ACTION:CREATE_RESERVATION]" in prompt


def test_prompt_builder_without_context_or_rules():
    prompt = PromptBuilder.build(_agent())

    assert "## CRITICAL RULES" not in prompt
    assert "## CURRENT CONTEXT" not in prompt
    assert "{venue_name}" in prompt


def test_no_draft_context_lists_zones_or_placeholder():
    assert "Patio, Barra" in NoDraftPrompt(venue_name="x", zones=["Patio", "Barra"]).describe()
    assert "[NO HAY DATOS]" in NoDraftPrompt(venue_name="x").describe()


def test_name_context_asks_for_the_name():
    assert "Paso actual: name" in NamePrompt(venue_name="x").describe()
