from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from mesabot.core.brain import Brain
from mesabot.core.schemas import LLMConfig


def test_resolve_model_openai():
    assert Brain._resolve_model("openai", "gpt-4o") == "gpt-4o"


def test_resolve_model_ollama():
    assert Brain._resolve_model("ollama", "llama3.2") == "ollama/llama3.2"
    assert Brain._resolve_model("ollama", "ollama/llama3.2") == "ollama/llama3.2"


def test_resolve_model_google():
    assert Brain._resolve_model("google", "gemini-pro") == "gemini/gemini-pro"


def test_from_config():
    llm = LLMConfig(
        provider="ollama",
        model="llama3.2",
        temperature=0.5,
        max_tokens=120,
        api_base="http://localhost:11434",
    )
    brain = Brain.from_config(llm, api_key="k")
    assert brain.provider == "ollama"
    assert brain.model == "ollama/llama3.2"
    assert brain.temperature == 0.5
    assert brain.max_tokens == 120
    assert brain.api_base == "http://localhost:11434"
    assert brain.api_key == "k"
    assert brain.timeout == 20.0


def test_token_counts_keeps_only_int_counters():
    class _Usage:
        prompt_tokens = 1
        completion_tokens = 2
        total_tokens = 3
        prompt_tokens_details = object()

    assert Brain._token_counts(_Usage()) == {
        "prompt_tokens": 1,
        "completion_tokens": 2,
        "total_tokens": 3,
    }
    assert Brain._token_counts(None) == {}
    assert Brain._token_counts({"total_tokens": 9, "cost": 0.1}) == {"total_tokens": 9}


@pytest.mark.asyncio
async def test_think_prepends_system_prompt():
    response = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content="¡Hola!"))],
        model="ollama/llama3.2",
        usage={"total_tokens": 12},
    )
    brain = Brain(provider="ollama", model="llama3.2", max_tokens=50)

    with patch("litellm.acompletion", new=AsyncMock(return_value=response)) as completion:
        result = await brain.think("SYSTEM", [{"role": "user", "content": "hola"}])

    assert result.content == "¡Hola!"
    assert result.usage == {"total_tokens": 12}
    kwargs = completion.await_args.kwargs
    assert kwargs["model"] == "ollama/llama3.2"
    assert kwargs["messages"][0] == {"role": "system", "content": "SYSTEM"}
    assert kwargs["messages"][1] == {"role": "user", "content": "hola"}
    assert kwargs["max_tokens"] == 50
    assert kwargs["temperature"] == 0.2
    assert kwargs["timeout"] is None


def test_consecutive_turns_of_the_same_role_are_merged():
    history = [
        {"role": "assistant", "content": "¡Listo, Juan!"},
        {"role": "assistant", "content": "¿Para cuántas personas?"},
        {"role": "user", "content": "4"},
        {"role": "user", "content": "  "},
        {"role": "user", "content": "en el patio"},
    ]

    assert Brain._alternate_roles(history) == [
        {"role": "assistant", "content": "¡Listo, Juan!\n¿Para cuántas personas?"},
        {"role": "user", "content": "4\nen el patio"},
    ]
