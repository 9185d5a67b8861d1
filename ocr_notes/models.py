"""
Shared data models for the structuring and chunking engine.
"""

from typing import List, Optional, Union
from dataclasses import dataclass, field


@dataclass
class Heading:
    """A detected (or synthetic) heading.

    Parent and children are stored as indices into ``DocumentStructure.headings``.
    Synthetic headings (page pseudo-sections, section groups, front matter)
    have ``index`` set to None and no links.
    """

    level: int  # 1=main, 2=section, 3=sub-section
    text: str
    start_index: int
    end_index: int
    index: Optional[int] = None
    parent: Optional[int] = None
    children: List[int] = field(default_factory=list)

    @property
    def is_synthetic(self) -> bool:
        return self.index is None


@dataclass
class Section:
    """Exact slice of the source text owned by one heading."""

    heading: Heading
    content: str
    start_index: int
    end_index: int
    page_number: Optional[int] = None


@dataclass
class DocumentStructure:
    """Result of one analysis pass. Read-only once built."""

    headings: List[Heading]
    sections: List[Section]
    total_length: int
    page_breaks: List[int] = field(default_factory=list)

    def parent_of(self, heading: Heading) -> Optional[Heading]:
        if heading.parent is None:
            return None
        return self.headings[heading.parent]

    def ancestry(self, heading: Heading) -> List[Heading]:
        """Return the heading chain from the root down to ``heading``."""
        chain = []
        current = heading
        while current is not None:
            chain.append(current)
            current = self.parent_of(current)
        chain.reverse()
        return chain

    @property
    def page_count(self) -> int:
        return max(1, len(self.page_breaks))


@dataclass
class ContentChunk:
    """A token-budgeted unit of source text with its heading context."""

    id: str
    content: str
    heading_context: List[Heading]
    sections: List[Section]
    token_count: int
    is_complete: bool = True
    page_numbers: List[int] = field(default_factory=list)


@dataclass
class ChunkingResult:
    """Ordered chunks produced for one document."""

    chunks: List[ContentChunk]
    total_chunks: int
    total_content_length: int
    structure: Optional[DocumentStructure] = None

    @property
    def covered_length(self) -> int:
        return sum(len(chunk.content) for chunk in self.chunks)

    @property
    def coverage(self) -> float:
        if self.total_content_length == 0:
            return 1.0
        return self.covered_length / self.total_content_length


@dataclass
class PageUnit:
    """A single OCR page submitted on its own (page-wise processing)."""

    page_number: int
    content: str

    @property
    def id(self) -> str:
        return f"page-{self.page_number}"

    @property
    def page_numbers(self) -> List[int]:
        return [self.page_number]


Unit = Union[ContentChunk, PageUnit]


@dataclass
class ProcessedUnit:
    """Formatted output for one chunk or page."""

    id: str
    processed_content: str
    original_unit: Unit
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        unit = self.original_unit
        return {
            "id": self.id,
            "success": self.success,
            "error": self.error,
            "page_numbers": list(unit.page_numbers),
            "source_length": len(unit.content),
            "output_length": len(self.processed_content),
            "token_count": getattr(unit, "token_count", None),
            "is_complete": getattr(unit, "is_complete", True),
        }


@dataclass(frozen=True)
class ProcessingState:
    """Numbering and style state carried from one unit to the next."""

    current_unit: int = 0
    total_units: int = 0
    unit_label: str = "chunk"
    last_main_heading_number: int = 0
    last_heading_number: int = 0
    last_sub_heading_number: int = 0
    last_bullet_level: int = 0
    current_main_heading: str = ""
    current_heading: str = ""
    current_sub_heading: str = ""
    formatting_context: str = ""


@dataclass
class ProgressEvent:
    """Progress notification for UI collaborators."""

    current_unit: int
    total_units: int
    phase: str  # analyzing | chunking | processing | merging | complete
    message: str


@dataclass
class ProcessingRun:
    """Everything the sequential processor produced for one run."""

    results: List[ProcessedUnit]
    final_state: ProcessingState
    cancelled: bool = False


@dataclass
class PipelineResult:
    """Final document plus the per-unit record of how it was produced."""

    document: str
    results: List[ProcessedUnit]
    chunking: Optional[ChunkingResult] = None
    cancelled: bool = False

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def success_ratio(self) -> float:
        if not self.results:
            return 1.0
        return self.success_count / len(self.results)
