"""
Token-budgeted chunk construction.

Chunks are built from exact slices of the source text, so concatenating the
chunks of the page path or the section path reproduces the source verbatim.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .config import CHUNK_MAX_TOKENS, COVERAGE_THRESHOLD, MIN_RECOVERY_CHARS
from .models import ChunkingResult, ContentChunk, DocumentStructure, Heading, Section
from .utils.pages import page_slices
from .utils.tokens import estimate_tokens, max_chars_for

logger = logging.getLogger(__name__)


@dataclass
class SectionGroup:
    """Consecutive sections that share one level-1 heading."""

    main_heading: Heading
    sections: List[Section] = field(default_factory=list)

    @property
    def content(self) -> str:
        return "".join(section.content for section in self.sections)


@dataclass
class _Piece:
    content: str
    sections: List[Section]
    page_numbers: List[int]
    is_complete: bool = True
    part: Optional[int] = None  # 1-based position when cut from an oversized item


class StructuredChunker:
    """
    Partitions analyzed OCR text into chunks that fit a token budget.

    This component:
    1. Returns the whole document as one chunk when it fits
    2. Falls back to page-based chunking when no headings were detected
    3. Groups sections on level-1 boundaries and splits groups over budget
    4. Checks coverage and appends a recovery chunk if content went missing
    """

    def __init__(self, max_tokens: int = CHUNK_MAX_TOKENS, split_oversized: bool = True):
        if max_tokens < 1:
            raise ValueError(f"max_tokens must be at least 1, got {max_tokens}")
        self.max_tokens = max_tokens
        self.split_oversized = split_oversized

    def build_chunks(self, source_text: str, structure: DocumentStructure) -> ChunkingResult:
        logger.info(f"Starting chunking process for {len(source_text)} characters")

        if estimate_tokens(source_text) <= self.max_tokens:
            logger.info("Document fits in single chunk")
            chunks = [ContentChunk(
                id="chunk-1",
                content=source_text,
                heading_context=[h for h in structure.headings if h.level == 1],
                sections=list(structure.sections),
                token_count=estimate_tokens(source_text),
                is_complete=True,
                page_numbers=list(range(1, structure.page_count + 1)),
            )]
        elif not structure.sections or not structure.headings:
            logger.info("No headings found, chunking by pages")
            chunks = self._chunk_by_pages(source_text, structure)
        else:
            chunks = self._chunk_by_sections(structure)

        chunks = self._ensure_coverage(source_text, chunks)

        return ChunkingResult(
            chunks=chunks,
            total_chunks=len(chunks),
            total_content_length=len(source_text),
            structure=structure,
        )

    def group_sections(self, sections: List[Section]) -> List[SectionGroup]:
        """Group sections on level-1 boundaries, opening a synthetic group on overflow."""
        groups: List[SectionGroup] = []
        current: Optional[SectionGroup] = None

        for section in sections:
            is_main = section.heading.level == 1
            overflows = (
                current is not None
                and current.sections
                and estimate_tokens(current.content + section.content) > self.max_tokens
            )

            if is_main or current is None or overflows:
                if current is not None:
                    groups.append(current)
                main_heading = section.heading if is_main else Heading(
                    level=1,
                    text=f"Section Group {len(groups) + 1}",
                    start_index=section.start_index,
                    end_index=section.end_index,
                )
                current = SectionGroup(main_heading=main_heading, sections=[section])
            else:
                current.sections.append(section)

        if current is not None:
            groups.append(current)

        return groups

    def _chunk_by_sections(self, structure: DocumentStructure) -> List[ContentChunk]:
        groups = self.group_sections(structure.sections)
        logger.info(f"Created {len(groups)} section groups")

        chunks = []
        for group_index, group in enumerate(groups, start=1):
            heading_context = structure.ancestry(group.main_heading)
            group_content = group.content
            group_tokens = estimate_tokens(group_content)

            if group_tokens <= self.max_tokens:
                chunks.append(ContentChunk(
                    id=f"chunk-{group_index}",
                    content=group_content,
                    heading_context=heading_context,
                    sections=list(group.sections),
                    token_count=group_tokens,
                    is_complete=True,
                    page_numbers=_unique_pages(group.sections),
                ))
                logger.debug(f"Created chunk {group_index}: {len(group_content)} chars")
                continue

            items = [(section.content, [section], _unique_pages([section])) for section in group.sections]
            for sub_index, piece in enumerate(self._pack(items), start=1):
                chunks.append(ContentChunk(
                    id=f"chunk-{group_index}-{sub_index}",
                    content=piece.content,
                    heading_context=heading_context,
                    sections=piece.sections,
                    token_count=estimate_tokens(piece.content),
                    is_complete=piece.is_complete,
                    page_numbers=piece.page_numbers,
                ))
                logger.debug(f"Created sub-chunk {group_index}-{sub_index}: {len(piece.content)} chars")

        return chunks

    def _chunk_by_pages(self, source_text: str, structure: DocumentStructure) -> List[ContentChunk]:
        items = [
            (source_text[start:end], [], [page_number])
            for page_number, start, end in page_slices(source_text, structure.page_breaks)
        ]

        chunks = []
        chunk_index = 0
        for piece in self._pack(items):
            # Pieces cut from one oversized page share a chunk ordinal
            if piece.part is None or piece.part == 1:
                chunk_index += 1
            chunk_id = f"chunk-{chunk_index}" if piece.part is None else f"chunk-{chunk_index}-{piece.part}"

            chunks.append(ContentChunk(
                id=chunk_id,
                content=piece.content,
                heading_context=[],
                sections=[],
                token_count=estimate_tokens(piece.content),
                is_complete=piece.is_complete,
                page_numbers=piece.page_numbers,
            ))

        logger.info(f"Created {len(chunks)} page-based chunks")
        return chunks

    def _pack(self, items: List[Tuple[str, List[Section], List[int]]]) -> List[_Piece]:
        """
        Greedily pack ``(text, sections, pages)`` items into pieces within budget.

        The buffer is flushed whenever the next item would overflow it. An item
        that is over budget on its own is cut into incomplete pieces when
        ``split_oversized`` is set.
        """
        pieces: List[_Piece] = []
        buffer = _Piece(content="", sections=[], page_numbers=[])

        def flush():
            nonlocal buffer
            if buffer.content:
                pieces.append(buffer)
            buffer = _Piece(content="", sections=[], page_numbers=[])

        for text, sections, pages in items:
            if buffer.content and estimate_tokens(buffer.content + text) > self.max_tokens:
                flush()

            if self.split_oversized and estimate_tokens(text) > self.max_tokens:
                flush()
                parts = split_text(text, self.max_tokens)
                logger.warning(
                    f"Splitting oversized content ({estimate_tokens(text)} tokens, "
                    f"pages {pages}) into {len(parts)} pieces"
                )
                for i, part in enumerate(parts):
                    pieces.append(_Piece(
                        content=part,
                        sections=list(sections),
                        page_numbers=list(pages),
                        is_complete=(i == len(parts) - 1),
                        part=i + 1,
                    ))
                continue

            buffer.content += text
            buffer.sections.extend(sections)
            for page in pages:
                if page not in buffer.page_numbers:
                    buffer.page_numbers.append(page)

        flush()
        return pieces

    def _ensure_coverage(self, source_text: str, chunks: List[ContentChunk]) -> List[ContentChunk]:
        covered = sum(len(chunk.content) for chunk in chunks)
        logger.info(f"Total content processed: {covered}/{len(source_text)} characters")

        if covered >= len(source_text) * COVERAGE_THRESHOLD:
            return chunks

        logger.warning("Significant content may have been lost during chunking")
        remaining = find_missing_content(source_text, chunks)
        if len(remaining.strip()) > MIN_RECOVERY_CHARS:
            chunks = chunks + [ContentChunk(
                id="chunk-remaining",
                content=remaining,
                heading_context=[],
                sections=[],
                token_count=estimate_tokens(remaining),
                is_complete=True,
                page_numbers=[],
            )]
            logger.info(f"Added remaining content chunk: {len(remaining)} chars")
        return chunks


def split_text(text: str, max_tokens: int) -> List[str]:
    """Cut ``text`` at line boundaries into pieces within budget; over-long lines are hard-cut."""
    limit = max_chars_for(max_tokens)
    parts: List[str] = []
    current = ""

    for line in text.splitlines(keepends=True):
        if len(current) + len(line) <= limit:
            current += line
            continue
        if current:
            parts.append(current)
            current = ""
        while len(line) > limit:
            parts.append(line[:limit])
            line = line[limit:]
        current = line

    if current:
        parts.append(current)
    return parts


def find_missing_content(source_text: str, chunks: List[ContentChunk]) -> str:
    """Best-effort: source lines that appear in no chunk, in source order."""
    processed_lines = set()
    for chunk in chunks:
        processed_lines.update(chunk.content.split('\n'))

    missing = [
        line for line in source_text.split('\n')
        if line.strip() and line not in processed_lines
    ]
    return '\n'.join(missing)


def _unique_pages(sections: List[Section]) -> List[int]:
    pages: List[int] = []
    for section in sections:
        if section.page_number and section.page_number not in pages:
            pages.append(section.page_number)
    return pages


def build_chunks(
    source_text: str,
    structure: DocumentStructure,
    max_tokens: int = CHUNK_MAX_TOKENS,
) -> ChunkingResult:
    """Convenience wrapper around ``StructuredChunker.build_chunks``."""
    return StructuredChunker(max_tokens=max_tokens).build_chunks(source_text, structure)
