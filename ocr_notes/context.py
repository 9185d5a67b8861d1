"""
Continuation state between processed units (chunks or pages).

The state is a frozen value: every update returns a new ``ProcessingState``,
so a run is a fold over its ordered units.
"""

import re
import html
from dataclasses import replace
from typing import Dict, List, Optional

from .config import FORMATTING_SAMPLE_CHARS
from .models import ContentChunk, ProcessingState, Unit

HEADING_TAG_PATTERNS = {
    level: re.compile(rf'<h{level}[^>]*>(.*?)</h{level}>', re.IGNORECASE | re.DOTALL)
    for level in (1, 2, 3)
}
TAG_PATTERN = re.compile(r'<[^>]*>')
BLOCK_END_PATTERN = re.compile(r'</(?:h[1-6]|p|li|ul|ol|div|tr)>|<br\s*/?>', re.IGNORECASE)

MAIN_NUMBER_PATTERNS = [
    re.compile(r'(?:Chapter|Unit|Section|Part)\s+(\d+)', re.IGNORECASE),
    re.compile(r'^(\d+)\.\s*[A-Z][^.]*$', re.MULTILINE),
]
HEADING_NUMBER_PATTERN = re.compile(r'^\s*(\d+)\.', re.MULTILINE)
SUB_HEADING_NUMBER_PATTERN = re.compile(r'^\s*\d+\.(\d+)', re.MULTILINE)
BULLET_PATTERN = re.compile(r'^([ \t]*)[•\-\*]', re.MULTILINE)


def _plain_text(fragment: str) -> str:
    """Strip markup, keeping one line per block element."""
    text = BLOCK_END_PATTERN.sub('\n', fragment)
    text = TAG_PATTERN.sub('', text)
    return html.unescape(text)


def extract_last_headings(output: str) -> Dict[int, str]:
    """Text of the last ``<h1>``, ``<h2>`` and ``<h3>`` in ``output``, per level."""
    headings = {}
    for level, pattern in HEADING_TAG_PATTERNS.items():
        matches = pattern.findall(output)
        if matches:
            text = _plain_text(matches[-1]).strip()
            if text:
                headings[level] = text
    return headings


def extract_counters(output: str) -> Dict[str, int]:
    """Numbering found in ``output``; keys are only present when something was found."""
    text = _plain_text(output)
    counters = {}

    for pattern in MAIN_NUMBER_PATTERNS:
        match = pattern.search(text)
        if match:
            counters["last_main_heading_number"] = int(match.group(1))
            break

    heading_numbers = [int(n) for n in HEADING_NUMBER_PATTERN.findall(text)]
    if heading_numbers:
        counters["last_heading_number"] = max(heading_numbers)

    sub_numbers = [int(n) for n in SUB_HEADING_NUMBER_PATTERN.findall(text)]
    if sub_numbers:
        counters["last_sub_heading_number"] = max(sub_numbers)

    bullets = BULLET_PATTERN.findall(text)
    if bullets:
        counters["last_bullet_level"] = max(len(indent.expandtabs(2)) // 2 for indent in bullets)

    return counters


class ContinuationTracker:
    """
    Carries numbering and formatting continuity from one unit to the next.

    This component is responsible for:
    1. Creating the zeroed state for a run
    2. Rendering the continuation context for the next generation request
    3. Updating the state from each unit's formatted output
    """

    def create_initial_state(self, total_units: int, unit_label: str = "chunk") -> ProcessingState:
        return ProcessingState(total_units=total_units, unit_label=unit_label)

    def derive_context(self, state: ProcessingState, unit: Optional[Unit] = None) -> str:
        """
        Render the instruction block for the next unit.

        Args:
            state: State after the previous unit
            unit: The unit about to be processed (adds its source details)

        Returns:
            Continuation context string
        """
        label = state.unit_label.upper()
        position = f"{label} {state.current_unit + 1} of {state.total_units}"
        parts = []

        if state.current_unit == 0:
            parts.append(f"DOCUMENT CONTEXT - This is {position}.\n")
        else:
            parts.append(f"CONTINUATION CONTEXT - Processing {position}\n")
            parts.append(f"PREVIOUS {label} FORMATTING STATE:")
            if state.current_main_heading:
                parts.append(f'- Current main heading: "{state.current_main_heading}"')
            if state.current_heading:
                parts.append(f'- Current section heading: "{state.current_heading}"')
            if state.current_sub_heading:
                parts.append(f'- Current sub-heading: "{state.current_sub_heading}"')
            parts.append(f"- Last main heading number: {state.last_main_heading_number}")
            parts.append(f"- Last section heading number: {state.last_heading_number}")
            parts.append(f"- Last sub-heading number: {state.last_sub_heading_number}")
            parts.append(f"- Last bullet point level: {state.last_bullet_level}\n")

            parts.append("CRITICAL FORMATTING REQUIREMENTS:")
            parts.append(f"1. CONTINUE EXACT numbering from the previous {state.unit_label} (do not restart from 1)")
            parts.append("2. MAINTAIN the same heading hierarchy and HTML formatting style")
            parts.append(f"3. If this {state.unit_label} continues a section, DO NOT create a new main heading")
            parts.append(f"4. If this {state.unit_label} starts genuinely new content, increment appropriately")
            parts.append("5. PRESERVE all content - do not summarize or omit any information")
            parts.append("6. Continue bullet points and numbered lists seamlessly\n")

            if state.formatting_context:
                parts.append(f"ESTABLISHED FORMATTING STYLE:\n{state.formatting_context}\n")

        if unit is not None:
            parts.append(self._describe_unit(unit))

        return "\n".join(parts).rstrip() + "\n"

    def update_state(self, state: ProcessingState, unit_output: str, unit_index: int) -> ProcessingState:
        """
        Derive the state after ``unit_output``.

        Counters only move forward (``max`` of old and new); heading texts
        are replaced only by headings actually present in the output.
        """
        changes = {"current_unit": unit_index + 1}

        headings = extract_last_headings(unit_output)
        if 1 in headings:
            changes["current_main_heading"] = headings[1]
        if 2 in headings:
            changes["current_heading"] = headings[2]
        if 3 in headings:
            changes["current_sub_heading"] = headings[3]

        for name, value in extract_counters(unit_output).items():
            changes[name] = max(getattr(state, name), value)

        sample = unit_output.strip()[:FORMATTING_SAMPLE_CHARS]
        if sample:
            changes["formatting_context"] = sample

        return replace(state, **changes)

    def _describe_unit(self, unit: Unit) -> str:
        lines: List[str] = []
        if unit.page_numbers:
            lines.append(f"SOURCE PAGES: {', '.join(str(p) for p in unit.page_numbers)}")

        if isinstance(unit, ContentChunk):
            if unit.heading_context:
                lines.append("\nHEADING HIERARCHY:")
                for depth, heading in enumerate(unit.heading_context):
                    lines.append(f"{'  ' * depth}{heading.level}. {heading.text}")
            if unit.sections:
                lines.append("\nSECTIONS IN THIS CHUNK:")
                for section in unit.sections:
                    lines.append(f"- {section.heading.text} (Level {section.heading.level})")
            lines.append(f"\nCONTENT LENGTH: {len(unit.content)} characters")
            lines.append(f"TOKEN COUNT: {unit.token_count}")
            if not unit.is_complete:
                lines.append("NOTE: This chunk was cut mid-section; the next chunk continues it.")

        return "\n".join(lines)


_default_tracker = ContinuationTracker()


def derive_context(state: ProcessingState, unit: Optional[Unit] = None) -> str:
    return _default_tracker.derive_context(state, unit)


def update_state(state: ProcessingState, unit_output: str, unit_index: int) -> ProcessingState:
    return _default_tracker.update_state(state, unit_output, unit_index)
