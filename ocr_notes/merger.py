"""
Merging of processed units back into one HTML document.
"""

import re
import logging
from typing import List, Sequence, Set, Tuple

from .config import MIN_MERGED_LENGTH
from .models import ProcessedUnit

logger = logging.getLogger(__name__)

TITLE_PATTERN = re.compile(r'<h1[^>]*>.*?</h1>', re.IGNORECASE | re.DOTALL)
EXTRA_BLANK_LINES = re.compile(r'\n[ \t]*\n(?:[ \t]*\n)+')
BLOCK_BOUNDARY = re.compile(r'(</h[1-6]>|</p>|</[uo]l>)\s*(<(?:h[1-6]|p|ul|ol)\b)', re.IGNORECASE)
ORDINAL = re.compile(r'\d+')

MIN_NONTRIVIAL_UNIT_CHARS = 100


def ordinal_key(unit_id: str) -> Tuple[float, ...]:
    """Numeric ordinals embedded in an id, e.g. ``chunk-2-1`` -> ``(2, 1)``; ids without digits sort last."""
    numbers = ORDINAL.findall(unit_id)
    if not numbers:
        return (float("inf"),)
    return tuple(float(n) for n in numbers)


def normalize(text: str) -> str:
    """
    Normalise whitespace between blocks. Idempotent.

    Runs of blank lines collapse to one, and exactly one blank line separates
    a closing heading/paragraph/list tag from the next opening one.
    """
    text = EXTRA_BLANK_LINES.sub('\n\n', text)
    text = BLOCK_BOUNDARY.sub(r'\1\n\n\2', text)
    return text.strip()


class NotesMerger:
    """
    Reassembles processed units into a single document.

    Units are ordered by the ordinals in their ids. The first unit is kept
    verbatim; later units lose any ``<h1>`` title byte-identical to one
    already emitted.
    """

    def merge(self, units: Sequence[ProcessedUnit]) -> str:
        if not units:
            return ""

        ordered = sorted(units, key=lambda u: ordinal_key(u.id))
        logger.info(f"Merging {len(ordered)} processed units")

        emitted_titles: Set[str] = set()
        fragments: List[str] = []

        for position, unit in enumerate(ordered):
            content = unit.processed_content
            if position > 0:
                content = self._strip_repeated_titles(content, emitted_titles)
            emitted_titles.update(TITLE_PATTERN.findall(content))

            content = content.strip()
            if content:
                fragments.append(content)
            logger.debug(f"Merged {unit.id}: {len(content)} chars (success: {unit.success})")

        merged = normalize("\n\n".join(fragments))

        successful = sum(1 for unit in ordered if unit.success)
        nontrivial = sum(1 for unit in ordered if len(unit.original_unit.content.strip()) >= MIN_NONTRIVIAL_UNIT_CHARS)
        logger.info(f"Merge complete: {len(merged)} chars, {successful}/{len(ordered)} units successful")

        if len(merged) < MIN_MERGED_LENGTH and nontrivial > 1:
            logger.warning("Merged content seems too short, adding debug info")
            merged += f"\n\n<p><em>Debug: Processed {len(ordered)} units, {successful} successful</em></p>"

        return merged

    def _strip_repeated_titles(self, content: str, emitted_titles: Set[str]) -> str:
        for title in set(TITLE_PATTERN.findall(content)):
            if title in emitted_titles:
                content = content.replace(title, '')
        return content


def merge(units: Sequence[ProcessedUnit]) -> str:
    """Convenience wrapper around ``NotesMerger().merge``."""
    return NotesMerger().merge(units)
