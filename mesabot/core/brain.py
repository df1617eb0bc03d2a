from __future__ import annotations

from dataclasses import dataclass

import litellm


@dataclass
class BrainResponse:
    content: str
    model: str
    usage: dict


class Brain:
    """
    Thin LiteLLM wrapper used by the response generator.

    The reservation flow answers most steps from templates, so the history
    handed to the model often holds several assistant turns in a row. Those
    are collapsed before the call; local models served by Ollama drift when
    roles do not alternate.

    Example:
        brain = Brain(provider="ollama", model="llama3.2", api_base="http://localhost:11434")
        response = await brain.think(system_prompt, history)
    """

    PROVIDER_PREFIXES = {
        "ollama": "ollama/",
        "anthropic": "anthropic/",
        "google": "gemini/",
        "openrouter": "openrouter/",
    }

    def __init__(
        self,
        provider: str,
        model: str,
        temperature: float = 0.2,
        max_tokens: int | None = None,
        api_key: str | None = None,
        api_base: str | None = None,
        timeout: float | None = None,
    ):
        self.provider = provider
        self.model = self._resolve_model(provider, model)
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_key = api_key
        self.api_base = api_base
        self.timeout = timeout

    async def think(self, system_prompt: str, messages: list[dict]) -> BrainResponse:
        """
        Ask the model for the next customer-facing reply.

        Args:
            system_prompt: Venue persona, rules and the current reservation step.
            messages: Conversation history (user/assistant), oldest first.
        """
        chat = [{"role": "system", "content": system_prompt}] + self._alternate_roles(messages)

        response = await litellm.acompletion(
            model=self.model,
            messages=chat,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            api_key=self.api_key,
            api_base=self.api_base,
            timeout=self.timeout,
        )

        return BrainResponse(
            content=response.choices[0].message.content or "",
            model=response.model,
            usage=self._token_counts(getattr(response, "usage", None)),
        )

    @staticmethod
    def _alternate_roles(messages: list[dict]) -> list[dict]:
        merged: list[dict] = []
        for message in messages:
            content = (message.get("content") or "").strip()
            if not content:
                continue
            if merged and merged[-1]["role"] == message["role"]:
                merged[-1]["content"] += "\n" + content
            else:
                merged.append({"role": message["role"], "content": content})
        return merged

    @staticmethod
    def _token_counts(usage) -> dict:
        if usage is None:
            return {}
        counts: dict[str, int] = {}
        for key in ("prompt_tokens", "completion_tokens", "total_tokens"):
            value = usage.get(key) if isinstance(usage, dict) else getattr(usage, key, None)
            if isinstance(value, int):
                counts[key] = value
        return counts

    @classmethod
    def _resolve_model(cls, provider: str, model: str) -> str:
        prefix = cls.PROVIDER_PREFIXES.get(provider, "")
        if prefix and model.startswith(prefix):
            return model
        return f"{prefix}{model}"

    @classmethod
    def from_config(cls, llm_config, api_key: str | None = None) -> "Brain":
        return cls(
            provider=llm_config.provider,
            model=llm_config.model,
            temperature=llm_config.temperature,
            max_tokens=llm_config.max_tokens,
            api_key=api_key,
            api_base=llm_config.api_base,
            timeout=llm_config.timeout_seconds,
        )
