import os
import json
import logging
from typing import Callable, Optional

from .chunker import StructuredChunker
from .config import (
    CHUNK_MAX_TOKENS,
    GENERATION_MAX_ATTEMPTS,
    INTER_UNIT_DELAY_SECONDS,
    RETRY_WAIT_SECONDS,
)
from .context import ContinuationTracker
from .merger import NotesMerger
from .models import PipelineResult, ProgressEvent
from .pagewise import split_pages
from .processors.sequential import GenerateFn, ProgressFn, SequentialProcessor
from .structure import StructureAnalyzer

logger = logging.getLogger(__name__)


class NotesPipeline:
    """
    Turns OCR text into one merged HTML document.

    This class orchestrates the whole run:
    1. Analyzes headings and sections
    2. Builds token-budgeted chunks (or splits pages for the page-wise variant)
    3. Processes units in order with continuation state
    4. Merges the processed units
    """

    def __init__(
        self,
        max_tokens: int = CHUNK_MAX_TOKENS,
        generate: Optional[GenerateFn] = None,
        delay_seconds: float = INTER_UNIT_DELAY_SECONDS,
        max_attempts: int = GENERATION_MAX_ATTEMPTS,
        retry_wait_seconds: float = RETRY_WAIT_SECONDS,
        split_oversized: bool = True,
        show_progress: bool = False,
    ):
        """
        Initialize the pipeline.

        Args:
            max_tokens: Token budget per generation request
            generate: Generation callable ``(system_context, text) -> html``;
                a GenerationClient is created from the environment if omitted
            delay_seconds: Pause between generation calls
            max_attempts: Generation attempts per unit
            retry_wait_seconds: Base wait between attempts
            split_oversized: Cut single sections/pages that exceed the budget
            show_progress: Show a progress bar while processing units
        """
        if generate is None:
            from .llm_client import GenerationClient
            generate = GenerationClient().generate

        self.generate = generate
        self.analyzer = StructureAnalyzer()
        self.chunker = StructuredChunker(max_tokens=max_tokens, split_oversized=split_oversized)
        self.tracker = ContinuationTracker()
        self.processor = SequentialProcessor(
            tracker=self.tracker,
            max_attempts=max_attempts,
            retry_wait_seconds=retry_wait_seconds,
            delay_seconds=delay_seconds,
            show_progress=show_progress,
        )
        self.merger = NotesMerger()

    def process_text(
        self,
        source_text: str,
        on_progress: Optional[ProgressFn] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> PipelineResult:
        """Structure-aware chunked processing of ``source_text``."""
        notify = on_progress or (lambda event: None)

        notify(ProgressEvent(0, 0, "analyzing", "Analyzing document structure..."))
        structure = self.analyzer.analyze(source_text)

        notify(ProgressEvent(0, 0, "chunking", "Creating content chunks..."))
        chunking = self.chunker.build_chunks(source_text, structure)
        total = chunking.total_chunks
        logger.info(
            f"Starting processing of {total} chunks "
            f"({chunking.total_content_length} total chars, coverage {chunking.coverage:.1%})"
        )

        state = self.tracker.create_initial_state(total, unit_label="chunk")
        run = self.processor.process(chunking.chunks, state, self.generate, on_progress, should_cancel)

        notify(ProgressEvent(len(run.results), total, "merging", "Merging processed chunks into complete document..."))
        document = self.merger.merge(run.results)

        result = PipelineResult(document=document, results=run.results, chunking=chunking, cancelled=run.cancelled)
        notify(ProgressEvent(len(run.results), total, "complete", "Processing complete!"))
        logger.info(
            f"Final document: {len(document)} characters, "
            f"{result.success_count}/{len(run.results)} chunks successful"
        )
        return result

    def process_pages(
        self,
        source_text: str,
        on_progress: Optional[ProgressFn] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> PipelineResult:
        """Page-wise processing: one generation request per OCR page."""
        notify = on_progress or (lambda event: None)

        notify(ProgressEvent(0, 0, "analyzing", "Splitting OCR text into pages..."))
        pages = split_pages(source_text)
        if not pages:
            logger.warning("No pages found in OCR text")

        state = self.tracker.create_initial_state(len(pages), unit_label="page")
        run = self.processor.process(pages, state, self.generate, on_progress, should_cancel)

        notify(ProgressEvent(len(run.results), len(pages), "merging", "Merging all pages..."))
        document = self.merger.merge(run.results)

        notify(ProgressEvent(len(run.results), len(pages), "complete", "Processing complete!"))
        logger.info(f"Page-wise processing completed: {len(run.results)} pages merged")
        return PipelineResult(document=document, results=run.results, cancelled=run.cancelled)


def process_file(
    input_path: str,
    output_path: str,
    mode: str = "chunked",
    pipeline: Optional[NotesPipeline] = None,
) -> str:
    """
    Process an OCR text file into an HTML notes file.

    Args:
        input_path: Path to the UTF-8 OCR text
        output_path: Path to save the HTML document
        mode: "chunked" or "pagewise"
        pipeline: Pipeline to use (one built from the environment if omitted)

    Returns:
        Path to the generated output file
    """
    if mode not in ("chunked", "pagewise"):
        raise ValueError(f"Unknown processing mode: {mode}")

    logger.info(f"Starting {mode} processing of {input_path}")
    with open(input_path, 'r', encoding='utf-8') as f:
        source_text = f.read()

    pipeline = pipeline or NotesPipeline(show_progress=True)
    if mode == "pagewise":
        result = pipeline.process_pages(source_text)
    else:
        result = pipeline.process_text(source_text)

    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(result.document)

    report = {
        "document_name": os.path.basename(input_path),
        "mode": mode,
        "source_length": len(source_text),
        "output_length": len(result.document),
        "total_units": len(result.results),
        "successful_units": result.success_count,
        "cancelled": result.cancelled,
        "units": [unit.to_dict() for unit in result.results],
    }
    if result.chunking is not None:
        report["coverage"] = result.chunking.coverage

    report_path = f"{os.path.splitext(output_path)[0]}.report.json"
    with open(report_path, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2, ensure_ascii=False)

    logger.info(f"Output saved to {output_path} (report: {report_path})")
    return output_path
