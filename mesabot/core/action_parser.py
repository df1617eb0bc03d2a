"""
Action Tag Parser — extracts and removes action tags from LLM output.

Supported tags:
  [ACTION:CREATE_RESERVATION]   — start the reservation flow
  [ACTION:CANCEL]               — the customer wants to cancel
  [ACTION:INFO_REQUEST]         — question about the venue
"""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass
class ParsedActions:
    """Result of parsing action tags from text."""

    clean_text: str
    actions: list[str]

    @property
    def first(self) -> str | None:
        return self.actions[0] if self.actions else None


# Also accepts the older "[ACTION:TYPE:{json}]" form and ignores the payload.
_TAG_PATTERN = re.compile(r"\[ACTION:(\w+)(?::[^\]]*)?\]")


def parse_action_tags(text: str) -> ParsedActions:
    """Extract all [ACTION:XXX] tags from text and return cleaned text + action list."""
    actions = _TAG_PATTERN.findall(text)
    clean = _TAG_PATTERN.sub("", text).strip()
    # Clean up whitespace left by removed tags
    clean = re.sub(r"\n\s*\n", "\n\n", clean).strip()
    return ParsedActions(clean_text=clean, actions=actions)
