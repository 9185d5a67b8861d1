"""
Page-wise processing: every OCR page is its own unit.
"""

import logging
from typing import List

from .exceptions import InvalidSourceError
from .models import PageUnit
from .utils.pages import iter_lines, page_marker_number, strip_page_markers

logger = logging.getLogger(__name__)


def split_pages(source_text: str) -> List[PageUnit]:
    """
    Split OCR text into pages using the page markers.

    Page numbers come from the markers themselves. Marker lines are removed,
    page text is stripped and empty pages are skipped. Text without any marker
    is a single page 1; text before the first marker joins the first page.
    """
    if not isinstance(source_text, str):
        raise InvalidSourceError(
            f"OCR source must be a string, got {type(source_text).__name__}"
        )

    pages: List[PageUnit] = []
    current_number = None
    current_lines: List[str] = []

    for _, line in iter_lines(source_text):
        number = page_marker_number(line)
        if number is not None:
            if current_number is not None:
                _append_page(pages, current_number, current_lines)
                current_lines = []
            current_number = number
        current_lines.append(line)

    _append_page(pages, 1 if current_number is None else current_number, current_lines)

    logger.info(f"Split OCR into {len(pages)} individual pages")
    return pages


def _append_page(pages: List[PageUnit], page_number: int, lines: List[str]) -> None:
    content = strip_page_markers('\n'.join(lines)).strip()
    if content:
        pages.append(PageUnit(page_number=page_number, content=content))
