from .pages import find_page_breaks, is_page_marker, page_slices, strip_page_markers
from .tokens import estimate_tokens

__all__ = [
    "find_page_breaks",
    "is_page_marker",
    "page_slices",
    "strip_page_markers",
    "estimate_tokens",
]
