from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from mesabot.core.schemas import AgentConfig


# --- Prompt context: one record per state that talks to the LLM ---


@dataclass
class NoDraftPrompt:
    venue_name: str
    zones: list[str] = field(default_factory=list)

    def describe(self) -> str:
        zones = ", ".join(self.zones) if self.zones else "[NO HAY DATOS]"
        return (
            "Paso actual: ninguno (no hay reserva en curso).\n"
            f"Zonas del local: {zones}\n"
            "Si el cliente quiere reservar, pregunta su nombre y agrega [ACTION:CREATE_RESERVATION]."
        )


@dataclass
class NamePrompt:
    venue_name: str

    def describe(self) -> str:
        return "Paso actual: name. Pregunta el nombre del cliente en primera persona (¿Cuál es tu nombre?)."


# Party size, zone selection and confirmation are answered from templates and
# never reach the LLM, so they have no prompt record.
PromptContext = Union[NoDraftPrompt, NamePrompt]


class PromptBuilder:
    """Builds a system prompt from the agent config and the current conversation state."""

    @staticmethod
    def build(agent_config: AgentConfig, context: PromptContext | None = None) -> str:
        sections: list[str] = []

        role = agent_config.identity.role
        if context is not None:
            role = role.replace("{venue_name}", context.venue_name)
        sections.append(f"## ROLE\n{role}")
        sections.append(f"## PERSONA\n{agent_config.identity.persona}")

        style = agent_config.style
        style_lines = [
            f"- Tone: {style.tone}",
            f"- Politeness: {style.politeness}",
            f"- Emoji: {style.emoji_policy}",
            f"- Max sentences per reply: {style.max_sentences}",
            f"- Max questions per reply: {style.max_questions}",
        ]
        if style.clean_text:
            style_lines.append("- NO markdown headers or links. Plain text only.")
        sections.append("## STYLE\n" + "\n".join(style_lines))

        if agent_config.rules:
            rules_text: list[str] = []
            for i, rule in enumerate(agent_config.rules, 1):
                rule_line = f"{i}. [{rule.priority.upper()}] {rule.description}"
                if rule.positive_example:
                    rule_line += f"\n   ✓ Correct: {rule.positive_example}"
                if rule.negative_example:
                    rule_line += f"\n   ✗ Wrong: {rule.negative_example}"
                rules_text.append(rule_line)
            sections.append("## CRITICAL RULES\n" + "\n".join(rules_text))

        if context is not None:
            sections.append(f"## CURRENT CONTEXT\n{context.describe()}")

        sections.append(
            "## OUTPUT RULES\n"
            "1. Reply in Spanish.\n"
            "2. One question per message. Never invent zones, tables or venue details.\n"
            "3. When the customer wants to book, end the reply with [ACTION:CREATE_RESERVATION]."
        )

        return "\n\n".join(sections)
