"""
OCR Notes Structuring and Chunking
==================================

This package splits long, noisy OCR text into token-budgeted chunks that keep
the document's heading hierarchy, sends them one at a time to a text-generation
service with numbering/style continuity, and merges the results into a single
HTML document without losing content.
"""

__version__ = "0.1.0"

from .models import (
    ChunkingResult,
    ContentChunk,
    DocumentStructure,
    Heading,
    PageUnit,
    PipelineResult,
    ProcessedUnit,
    ProcessingState,
    ProgressEvent,
    Section,
)
from .structure import analyze
from .chunker import build_chunks
from .context import derive_context, update_state
from .merger import merge, normalize
from .pagewise import split_pages


# Avoid importing the pipeline (and its SDK dependencies) until needed
def get_notes_pipeline():
    from .orchestrator import NotesPipeline
    return NotesPipeline


__all__ = [
    "analyze",
    "build_chunks",
    "derive_context",
    "update_state",
    "merge",
    "normalize",
    "split_pages",
    "get_notes_pipeline",
    "ChunkingResult",
    "ContentChunk",
    "DocumentStructure",
    "Heading",
    "PageUnit",
    "PipelineResult",
    "ProcessedUnit",
    "ProcessingState",
    "ProgressEvent",
    "Section",
]
