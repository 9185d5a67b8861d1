"""
Heading and section analysis for raw OCR text.

Headings are found with ordered pattern tiers (level 1 before 2 before 3
before the generic heuristic, first match wins). Sections are the exact
slices of the source between consecutive headings, or one slice per page when
no heading could be found.
"""

import re
import logging
from typing import Callable, List, Optional, Tuple

from .exceptions import InvalidSourceError
from .models import DocumentStructure, Heading, Section
from .utils.pages import find_page_breaks, is_page_marker, iter_lines, page_slices, strip_page_markers

logger = logging.getLogger(__name__)

Predicate = Callable[[str], bool]


def _pattern(regex: str, flags: int = 0) -> Predicate:
    compiled = re.compile(regex, flags)
    return lambda line: compiled.search(line) is not None


def _looks_like_heading(line: str) -> bool:
    """Short, capitalised, unpunctuated lines of at most eight words."""
    return (
        3 < len(line) < 80
        and not line.endswith(('.', ',', ';', ':'))
        and line[0].isupper()
        and len(line.split(' ')) <= 8
        and '  ' not in line
    )


MAIN_HEADING_RULES: List[Predicate] = [
    _pattern(r'^[A-Z][A-Z\s]{8,}$'),          # ALL CAPS headings
    _pattern(r'^CHAPTER\s+\d+', re.I),
    _pattern(r'^SECTION\s+[A-Z0-9]', re.I),
    _pattern(r'^PART\s+[A-Z0-9]', re.I),
    _pattern(r'^[IVX]+\.\s+[A-Z]'),           # Roman numerals
    _pattern(r'^\d+\.\s+[A-Z][^.]{10,}$'),    # Long numbered headings
    _pattern(r'^Unit\s+\d+', re.I),
    _pattern(r'^Module\s+\d+', re.I),
    _pattern(r'^Lesson\s+\d+', re.I),
]

SECTION_HEADING_RULES: List[Predicate] = [
    _pattern(r'^[A-Z][a-z\s]{6,}$'),          # Medium title case
    _pattern(r'^\d+\.\d+\s+[A-Z]'),           # 1.1 Something
    _pattern(r'^[A-Z]\.\s+[A-Z]'),            # A. Something
    _pattern(r'^[a-z]\)\s+[A-Z]'),            # a) Something
    _pattern(r'^[A-Z][a-z]+:\s*$'),           # Colon-ended
    _pattern(r'^\d+\.\s+[A-Z][a-z\s]{5,}$'),
    _pattern(r'^Question\s+\d+', re.I),
    _pattern(r'^Exercise\s+\d+', re.I),
    _pattern(r'^Example\s+\d+', re.I),
]

SUB_HEADING_RULES: List[Predicate] = [
    _pattern(r'^[A-Z][a-z\s]{3,20}$'),        # Short title case
    _pattern(r'^\d+\.\d+\.\d+\s+'),           # 1.1.1
    _pattern(r'^[ivx]+\)\s+[A-Z]'),
    _pattern(r'^\([a-z]\)\s+[A-Z]'),
    _pattern(r'^\([0-9]+\)\s+[A-Z]'),
    _pattern(r'^[a-z]\.\s+[A-Z]'),
    _pattern(r'^\*\s+[A-Z]'),
    _pattern(r'^-\s+[A-Z]'),
    _pattern(r'^[A-Z][a-z]+\s+\d+'),          # Word + number
]

# Evaluated in order; the first matching predicate decides the level.
HEADING_RULES: List[Tuple[Predicate, int]] = (
    [(rule, 1) for rule in MAIN_HEADING_RULES]
    + [(rule, 2) for rule in SECTION_HEADING_RULES]
    + [(rule, 3) for rule in SUB_HEADING_RULES]
    + [(_looks_like_heading, 3)]
)


def classify_line(line: str) -> Optional[int]:
    """Return the heading level for a stripped line, or None."""
    if len(line) < 2 or is_page_marker(line):
        return None
    for predicate, level in HEADING_RULES:
        if predicate(line):
            return level
    return None


class StructureAnalyzer:
    """
    Infers a heading tree and page-anchored sections from OCR text.

    The analyzer never fails on text input: when no heading is found the
    document is sectioned by page instead, so every character of the source
    still belongs to exactly one section.
    """

    def analyze(self, source_text: str) -> DocumentStructure:
        if not isinstance(source_text, str):
            raise InvalidSourceError(
                f"OCR source must be a string, got {type(source_text).__name__}"
            )

        page_breaks = find_page_breaks(source_text)
        headings = self._find_headings(source_text)
        logger.info(
            f"Analyzed {len(source_text)} characters: "
            f"{len(page_breaks)} page breaks, {len(headings)} headings"
        )

        if headings:
            sections = self._sections_from_headings(source_text, headings, page_breaks)
        else:
            logger.info("No headings found, creating sections by pages")
            sections = self._sections_from_pages(source_text, page_breaks)

        return DocumentStructure(
            headings=headings,
            sections=sections,
            total_length=len(source_text),
            page_breaks=page_breaks,
        )

    def _find_headings(self, source_text: str) -> List[Heading]:
        headings: List[Heading] = []

        for offset, line in iter_lines(source_text):
            level = classify_line(line.strip())
            if level is None:
                continue

            heading = Heading(
                level=level,
                text=line.strip(),
                start_index=offset,
                end_index=offset + len(line),
                index=len(headings),
            )

            # Nearest preceding heading with a smaller level becomes the parent
            for candidate in reversed(headings):
                if candidate.level < level:
                    heading.parent = candidate.index
                    candidate.children.append(heading.index)
                    break

            headings.append(heading)
            logger.debug(f"Found level {level} heading: '{heading.text}'")

        return headings

    def _sections_from_headings(
        self,
        source_text: str,
        headings: List[Heading],
        page_breaks: List[int],
    ) -> List[Section]:
        sections = []

        first_start = headings[0].start_index
        preamble = source_text[:first_start]
        absorb_preamble = not _has_content(preamble)
        if preamble and not absorb_preamble:
            front_matter = Heading(
                level=1,
                text="Front Matter",
                start_index=0,
                end_index=first_start,
            )
            sections.append(self._make_section(source_text, front_matter, 0, first_start, page_breaks))

        for i, heading in enumerate(headings):
            start = 0 if (i == 0 and absorb_preamble) else heading.start_index
            end = headings[i + 1].start_index if i + 1 < len(headings) else len(source_text)
            sections.append(self._make_section(source_text, heading, start, end, page_breaks))

        return sections

    def _sections_from_pages(self, source_text: str, page_breaks: List[int]) -> List[Section]:
        sections = []
        for page_number, start, end in page_slices(source_text, page_breaks):
            pseudo_heading = Heading(
                level=1,
                text=f"Page {page_number} Content",
                start_index=start,
                end_index=end,
            )
            sections.append(Section(
                heading=pseudo_heading,
                content=source_text[start:end],
                start_index=start,
                end_index=end,
                page_number=page_number,
            ))

        if sections and not any(_has_content(section.content) for section in sections):
            # Whitespace-only text carries nothing worth sectioning
            return []
        return sections

    def _make_section(
        self,
        source_text: str,
        heading: Heading,
        start: int,
        end: int,
        page_breaks: List[int],
    ) -> Section:
        return Section(
            heading=heading,
            content=source_text[start:end],
            start_index=start,
            end_index=end,
            page_number=page_number_at(heading.start_index, page_breaks),
        )


def page_number_at(offset: int, page_breaks: List[int]) -> int:
    """1-based index of the last page break at or before ``offset``."""
    page_number = 1
    for i, page_break in enumerate(page_breaks):
        if offset >= page_break:
            page_number = i + 1
        else:
            break
    return page_number


def _has_content(text: str) -> bool:
    """True if ``text`` holds anything besides whitespace and page markers.

    A legacy ``Page N:`` prefix is a marker, but the text after it is content.
    """
    return bool(strip_page_markers(text).strip())


def analyze(source_text: str) -> DocumentStructure:
    """Convenience wrapper around ``StructureAnalyzer().analyze``."""
    return StructureAnalyzer().analyze(source_text)
