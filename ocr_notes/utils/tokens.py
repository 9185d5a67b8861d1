"""
Token estimation shared by every size decision in the engine.
"""

import math

from ..config import CHARS_PER_TOKEN


def estimate_tokens(text: str) -> int:
    """Approximate token count as ``ceil(len(text) / CHARS_PER_TOKEN)``."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def max_chars_for(max_tokens: int) -> int:
    """Largest character count whose estimate stays within ``max_tokens``."""
    return max(1, int(max_tokens * CHARS_PER_TOKEN))
