"""
Response Generator — free-text replies for the conversational steps.

Only the no-draft and name steps talk to the LLM; everything else in the
reservation flow is answered from templates. The reply may carry an action
label, either from an explicit [ACTION:X] tag or inferred from the customer's
text with keyword rules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from mesabot.core.action_parser import parse_action_tags
from mesabot.core.brain import Brain
from mesabot.core.intent_router import DEFAULT_ACTIONS, IntentRouter
from mesabot.core.prompt_builder import (
    NamePrompt,
    PromptBuilder,
    PromptContext,
)
from mesabot.core.schemas import AgentConfig, IntentConfig

logger = logging.getLogger(__name__)


@dataclass
class GeneratedReply:
    text: str
    action: str | None = None


class ResponseGenerator:
    def __init__(
        self,
        brain: Brain,
        agent_config: AgentConfig,
        actions: list[IntentConfig] | None = None,
    ):
        self.brain = brain
        self.agent_config = agent_config
        self.action_router = IntentRouter(actions or DEFAULT_ACTIONS)

    async def generate(self, text: str, history: list[dict], context: PromptContext) -> GeneratedReply:
        system_prompt = PromptBuilder.build(self.agent_config, context)
        messages = list(history[-self.agent_config.llm.max_history :])
        messages.append({"role": "user", "content": text})

        try:
            response = await self.brain.think(system_prompt, messages)
        except Exception:
            logger.exception("LLM call failed, using fallback reply")
            return GeneratedReply(text=fallback_reply(context), action=self.action_router.classify(text))

        parsed = parse_action_tags(response.content)
        action = parsed.first or self.action_router.classify(text)
        reply_text = parsed.clean_text or fallback_reply(context)
        logger.info("Generated reply (model=%s, action=%s, usage=%s)", response.model, action, response.usage)
        return GeneratedReply(text=reply_text, action=action)


def fallback_reply(context: PromptContext) -> str:
    """Deterministic reply used when the LLM is unavailable or returns nothing."""
    if isinstance(context, NamePrompt):
        return f"¡Hola! 👋 Soy el asistente de reservas de {context.venue_name}. ¿Cuál es tu nombre?"
    return (
        f"Soy el asistente de reservas de {context.venue_name} y puedo ayudarte con tu reserva. "
        "¿Cuál es tu nombre para comenzar?"
    )
