"""
Deterministic HTML formatting used when the generation service fails.
"""

import re
import html
import logging
from typing import List

from ..models import Unit
from ..utils.pages import strip_page_markers

logger = logging.getLogger(__name__)

H2_TEMPLATE = (
    '<h2><span style="text-decoration: underline;"><span style="color: rgb(26, 1, 157); '
    'text-decoration: underline;">{}</span></span></h2>'
)
H3_TEMPLATE = (
    '<h3><span style="text-decoration: underline;"><span style="color: rgb(52, 73, 94); '
    'text-decoration: underline;">{}</span></span></h3>'
)

BULLET_ITEM = re.compile(r'^\s*[•\*\-]\s+')
NUMBERED_ITEM = re.compile(r'^\s*\d+[\.\)]\s+')
KEY_TERM = re.compile(r'\b([A-Z][a-z]{3,}|[A-Z]{2,})\b')
PARAGRAPH_BREAK = re.compile(r'\n\s*\n')


def highlight_key_terms(text: str) -> str:
    """Escape ``text`` and wrap capitalised words and acronyms in ``<strong>``."""
    return KEY_TERM.sub(r'<strong>\1</strong>', html.escape(text, quote=False))


def is_heading_block(block: str) -> bool:
    return (
        len(block) < 80
        and '\n' not in block
        and not block.endswith(('.', ','))
        and block[:1].isupper()
        and len(block.split()) <= 10
    )


def _is_list_block(block: str, pattern: re.Pattern) -> bool:
    lines = [line for line in block.split('\n') if line.strip()]
    items = [line for line in lines if pattern.match(line)]
    return len(items) >= 2 and len(items) * 2 >= len(lines)


def format_list(block: str, pattern: re.Pattern, tag: str) -> str:
    """Render list lines as ``<ul>``/``<ol>``; other lines become paragraphs in place."""
    parts: List[str] = []
    items: List[str] = []

    def close_list():
        if items:
            parts.append(f"<{tag}>" + "".join(items) + f"</{tag}>")
            items.clear()

    for line in block.split('\n'):
        stripped = line.strip()
        if not stripped:
            continue
        if pattern.match(stripped):
            items.append(f"<li>{highlight_key_terms(pattern.sub('', stripped, count=1))}</li>")
        else:
            close_list()
            parts.append(f"<p>{highlight_key_terms(stripped)}</p>")
    close_list()
    return "\n".join(parts)


def format_fallback(unit: Unit) -> str:
    """
    Format a unit's own source text as HTML notes.

    The result is never empty, even for a unit without any text.
    """
    logger.info(f"Creating fallback content for {unit.id}")
    parts: List[str] = []

    if unit.page_numbers:
        label = "Page" if len(unit.page_numbers) == 1 else "Pages"
        parts.append(H2_TEMPLATE.format(f"{label} {', '.join(str(p) for p in unit.page_numbers)}"))

    text = strip_page_markers(unit.content)
    for block in PARAGRAPH_BREAK.split(text):
        block = block.strip()
        if not block:
            continue
        if _is_list_block(block, BULLET_ITEM):
            parts.append(format_list(block, BULLET_ITEM, "ul"))
        elif _is_list_block(block, NUMBERED_ITEM):
            parts.append(format_list(block, NUMBERED_ITEM, "ol"))
        elif is_heading_block(block):
            parts.append(H3_TEMPLATE.format(html.escape(block, quote=False)))
        else:
            lines = [line.strip() for line in block.split('\n') if line.strip()]
            parts.append(f"<p>{highlight_key_terms(' '.join(lines))}</p>")

    if not any(part.startswith(('<p>', '<ul>', '<ol>', '<h3>')) for part in parts):
        parts.append(f"<p><em>No readable text was extracted for {html.escape(unit.id)}.</em></p>")

    return "\n".join(parts)
