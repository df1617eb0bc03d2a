"""
Secret Manager — resolves per-venue secret names to actual values.

Priority:
1. Environment variables (MESABOT_SECRET_{VENUE}_{NAME})
2. secrets/ directory (one file per secret)

Example:
    resolve_secret("la-parrilla", "telegram_bot_token")
    -> looks for env MESABOT_SECRET_LA_PARRILLA_TELEGRAM_BOT_TOKEN
    -> falls back to secrets/la-parrilla/telegram_bot_token
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

SECRETS_DIR = Path("secrets")


def resolve_secret(venue: str, secret_name: str, secrets_dir: Path = SECRETS_DIR) -> str | None:
    """
    Resolve a secret by name for a specific venue.

    Args:
        venue: Venue id or slug (e.g., "la-parrilla")
        secret_name: Secret name (e.g., "telegram_bot_token", "llm_api_key")

    Returns:
        Secret value or None if not found.
    """
    env_key = f"MESABOT_SECRET_{_slugify(venue)}_{_slugify(secret_name)}"
    value = os.environ.get(env_key)
    if value:
        return value

    secret_file = secrets_dir / venue / secret_name
    if secret_file.exists():
        return secret_file.read_text(encoding="utf-8").strip()

    logger.warning("Secret not found: %s/%s", venue, secret_name)
    return None


def _slugify(s: str) -> str:
    """Convert slug to env-safe format: la-parrilla -> LA_PARRILLA."""
    return s.replace("-", "_").upper()
