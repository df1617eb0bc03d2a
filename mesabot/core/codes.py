"""
Display codes: short human-readable reservation references.

"Juan Perez" + "+5491122334455" -> "J455". On collision with another active
reservation of the same venue the leading letter is swapped for a random
different one.
"""

from __future__ import annotations

import logging
import random
import string

logger = logging.getLogger(__name__)

FALLBACK_INITIAL = "X"


class CodeAllocator:
    def __init__(self, store, max_attempts: int = 26, rng: random.Random | None = None):
        self.store = store
        self.max_attempts = max_attempts
        self.rng = rng or random.Random()

    @staticmethod
    def allocate(name: str | None, phone: str) -> str:
        initial = (name or "").strip()[:1].upper()
        if not initial.isalpha():
            initial = FALLBACK_INITIAL
        digits = "".join(ch for ch in phone if ch.isdigit())
        return f"{initial}{digits[-3:].zfill(3)}"

    async def ensure_unique(self, venue_id: str, base_code: str) -> str:
        """Probe the store and return a code not held by any active reservation of the venue."""
        code = base_code
        suffix = base_code[1:]
        letters = [letter for letter in string.ascii_uppercase if letter != base_code[:1]]

        for attempt in range(self.max_attempts):
            if attempt:
                code = f"{self.rng.choice(letters)}{suffix}"
            if not await self.store.display_code_in_use(venue_id, code):
                return code
            logger.debug("Display code %s taken in venue %s (attempt %s)", code, venue_id, attempt + 1)

        logger.warning("Display code attempts exhausted for venue %s, using %s", venue_id, code)
        return code
