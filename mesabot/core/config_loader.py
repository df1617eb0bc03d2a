from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from mesabot.core.intent_router import DEFAULT_ACTIONS, DEFAULT_INTENTS
from mesabot.core.schemas import AgentConfig, BotConfig, DialoguePolicyConfig


def load_bot_config(config_dir: str | Path) -> BotConfig:
    """
    Load the bot configuration from a directory.

    Expected structure:
      config_dir/
        agent.yaml
        dialogue_policy.yaml   (optional, overrides the built-in intents/actions)
    """
    config_path = Path(config_dir)

    agent_path = config_path / "agent.yaml"
    if not agent_path.exists():
        raise FileNotFoundError(f"agent.yaml not found in {config_path}")

    agent_data = _load_yaml(agent_path)
    agent_config = AgentConfig(**agent_data.get("agent", agent_data))

    dp_path = config_path / "dialogue_policy.yaml"
    if dp_path.exists():
        dp_data = _load_yaml(dp_path)
        dialogue_policy = DialoguePolicyConfig(**dp_data.get("dialogue_policy", dp_data))
    else:
        dialogue_policy = DialoguePolicyConfig()

    if not dialogue_policy.intents:
        dialogue_policy.intents = list(DEFAULT_INTENTS)
    if not dialogue_policy.actions:
        dialogue_policy.actions = list(DEFAULT_ACTIONS)

    return BotConfig(agent=agent_config, dialogue_policy=dialogue_policy)


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}
