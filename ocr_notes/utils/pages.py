"""
Page-marker utilities for OCR text.

The OCR step separates pages with marker lines:

    === PAGE 3 OCR START ===
    ...page text...
    === PAGE 3 OCR END ===

Older exports use a ``Page 3:`` prefix at the start of a line instead. Both
conventions are recognised everywhere in the engine.
"""

import re
from typing import Iterator, List, Optional, Tuple

PAGE_START_PATTERN = re.compile(r'^\s*(?:=== PAGE (\d+) OCR START ===|Page (\d+):)')
PAGE_END_PATTERN = re.compile(r'^\s*=== PAGE \d+ OCR END ===\s*$')


def iter_lines(text: str) -> Iterator[Tuple[int, str]]:
    """Yield ``(offset, line)`` pairs; each line accounts for ``len(line) + 1`` characters."""
    offset = 0
    for line in text.split('\n'):
        yield offset, line
        offset += len(line) + 1


def page_marker_number(line: str) -> Optional[int]:
    """Return the page number if ``line`` opens a page, else None."""
    match = PAGE_START_PATTERN.match(line)
    if not match:
        return None
    return int(match.group(1) or match.group(2))


def is_page_marker(line: str) -> bool:
    return bool(PAGE_START_PATTERN.match(line) or PAGE_END_PATTERN.match(line))


def find_page_breaks(text: str) -> List[int]:
    """Offsets of every line that opens a page."""
    return [offset for offset, line in iter_lines(text) if PAGE_START_PATTERN.match(line)]


def page_slices(text: str, page_breaks: List[int]) -> List[Tuple[int, int, int]]:
    """
    Partition ``text`` into ``(page_number, start, end)`` slices.

    Page numbers are 1-based ordinals of the breaks. Text before the first
    break belongs to page 1, so the slices always cover the whole text.
    """
    if not text:
        return []
    if not page_breaks:
        return [(1, 0, len(text))]

    starts = [0] + list(page_breaks[1:])
    ends = list(page_breaks[1:]) + [len(text)]
    return [(i + 1, start, end) for i, (start, end) in enumerate(zip(starts, ends))]


def strip_page_markers(text: str) -> str:
    """Remove marker lines (and ``Page N:`` prefixes) from ``text``."""
    kept = []
    for _, line in iter_lines(text):
        if PAGE_END_PATTERN.match(line):
            continue
        match = PAGE_START_PATTERN.match(line)
        if match:
            line = line[match.end():]
            if not line.strip():
                continue
        kept.append(line)
    return '\n'.join(kept)
