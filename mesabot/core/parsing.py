"""Small text helpers shared by the engine and the intent router."""

from __future__ import annotations

import re
import unicodedata

_NUMBER = re.compile(r"\d+")
_PUNCTUATION = re.compile(r"[¡!¿?.,;:]")
_WHITESPACE = re.compile(r"\s+")
_NAME_INTRO = re.compile(
    r"(?:me\s+llamo|mi\s+nombre\s+es|soy)\s+([a-záéíóúüñ'\- ]+)",
    re.IGNORECASE,
)
_NAME_ONLY = re.compile(r"^[a-záéíóúüñ'\- ]+$", re.IGNORECASE)
_MAX_NAME_WORDS = 4

# Phrases in an assistant reply that mean it just asked for the name.
NAME_QUESTION_MARKERS = ("cuál es tu nombre", "cual es tu nombre", "tu nombre", "cómo te llamas", "como te llamas")


def normalize_address(address: str) -> str:
    """
    Channel address -> participant id.

    "5491122334455:12@s.whatsapp.net" -> "5491122334455"
    """
    without_domain = address.split("@")[0] or address
    without_device = without_domain.split(":")[0] or without_domain
    return re.sub(r"[^0-9+]", "", without_device)


def normalize_text(text: str) -> str:
    """Lowercase, strip accents and punctuation, collapse whitespace."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = _PUNCTUATION.sub(" ", stripped)
    return _WHITESPACE.sub(" ", stripped).strip()


def extract_number(text: str) -> int | None:
    match = _NUMBER.search(text)
    return int(match.group(0)) if match else None


def format_name(name: str) -> str:
    """'JUAN perez' -> 'Juan Perez'."""
    words = name.strip().lower().split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def extract_name(text: str) -> str | None:
    """Return the name from an explicit introduction ("me llamo X", "soy X"), if any."""
    match = _NAME_INTRO.search(text.strip())
    if not match:
        return None
    words = match.group(1).split()[:_MAX_NAME_WORDS]
    if not words:
        return None
    return " ".join(words)


def looks_like_name(text: str) -> bool:
    stripped = text.strip()
    if len(stripped) < 2 or stripped.isdigit():
        return False
    if not _NAME_ONLY.match(stripped):
        return False
    return len(stripped.split()) <= _MAX_NAME_WORDS


def asks_for_name(assistant_text: str) -> bool:
    lower = assistant_text.lower()
    return any(marker in lower for marker in NAME_QUESTION_MARKERS)


def find_zone_by_message(text: str, zones: list[str]) -> str | None:
    """
    Resolve a reply against an ordered zone list.

    An ordinal ("2") wins; otherwise the first zone whose name contains the
    text, or is contained in it, case-insensitively.
    """
    number = extract_number(text)
    if number is not None and 0 < number <= len(zones):
        return zones[number - 1]

    lower = text.lower().strip()
    if not lower:
        return None
    for zone in zones:
        zone_lower = zone.lower()
        if lower in zone_lower or zone_lower in lower:
            return zone
    return None
