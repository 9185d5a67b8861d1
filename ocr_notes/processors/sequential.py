"""
Sequential processor that drives units through the generation service in order.
"""

import time
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_none,
)
from tqdm import tqdm

from ..config import GENERATION_MAX_ATTEMPTS, INTER_UNIT_DELAY_SECONDS, RETRY_WAIT_SECONDS
from ..context import ContinuationTracker
from ..exceptions import GenerationError
from ..models import ProcessedUnit, ProcessingRun, ProcessingState, ProgressEvent, Unit
from .fallback import format_fallback

logger = logging.getLogger(__name__)

# (system_context, unit_source_text) -> formatted text
GenerateFn = Callable[[str, str], str]
ProgressFn = Callable[[ProgressEvent], None]


@dataclass
class GenerationOutcome:
    """Result of one unit's generation attempts."""

    ok: bool
    text: str = ""
    error: Optional[str] = None
    attempts: int = 0


class SequentialProcessor:
    """
    Processes units strictly in document order.

    For every unit the processor:
    1. Renders the continuation context from the current state
    2. Calls the generation service with bounded retries
    3. Falls back to deterministic formatting of the unit's own text on failure
    4. Updates the state from whatever content was kept
    """

    def __init__(
        self,
        tracker: Optional[ContinuationTracker] = None,
        max_attempts: int = GENERATION_MAX_ATTEMPTS,
        retry_wait_seconds: float = RETRY_WAIT_SECONDS,
        delay_seconds: float = INTER_UNIT_DELAY_SECONDS,
        show_progress: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            tracker: Continuation-state tracker (a fresh one if omitted)
            max_attempts: Generation attempts per unit
            retry_wait_seconds: Base of the exponential wait between attempts (0 disables it)
            delay_seconds: Fixed pause between units to respect rate limits (0 disables it)
            show_progress: Show a tqdm progress bar over units
            sleep: Sleep function, replaceable in tests
        """
        self.tracker = tracker or ContinuationTracker()
        self.max_attempts = max(1, max_attempts)
        self.retry_wait_seconds = retry_wait_seconds
        self.delay_seconds = delay_seconds
        self.show_progress = show_progress
        self.sleep = sleep

    def process(
        self,
        units: Sequence[Unit],
        prior_state: ProcessingState,
        per_unit_call: GenerateFn,
        on_progress: Optional[ProgressFn] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> ProcessingRun:
        """
        Process ``units`` in order, threading the continuation state.

        Cancellation is only checked between units; results gathered so far
        are always returned.
        """
        state = prior_state
        results: List[ProcessedUnit] = []
        total = len(units)
        cancelled = False

        for index, unit in enumerate(tqdm(units, desc="Processing units", disable=not self.show_progress)):
            if should_cancel is not None and should_cancel():
                logger.warning(f"Processing cancelled after {index}/{total} units")
                cancelled = True
                break

            logger.info(
                f"Processing {state.unit_label} {index + 1}/{total}: {unit.id} "
                f"({len(unit.content)} chars, pages {unit.page_numbers})"
            )
            if on_progress is not None:
                where = f"pages {', '.join(str(p) for p in unit.page_numbers)}" if unit.page_numbers else f"section {index + 1}"
                on_progress(ProgressEvent(
                    current_unit=index + 1,
                    total_units=total,
                    phase="processing",
                    message=f"Processing {where} ({index + 1} of {total})...",
                ))

            context = self.tracker.derive_context(state, unit)
            outcome = self.generate(per_unit_call, context, unit.content)

            if outcome.ok:
                result = ProcessedUnit(
                    id=unit.id,
                    processed_content=outcome.text,
                    original_unit=unit,
                    success=True,
                )
                logger.info(f"Processed {unit.id}: {len(outcome.text)} chars output")
            else:
                logger.error(f"Error processing {unit.id} after {outcome.attempts} attempts: {outcome.error}")
                result = ProcessedUnit(
                    id=unit.id,
                    processed_content=format_fallback(unit),
                    original_unit=unit,
                    success=False,
                    error=outcome.error,
                )

            results.append(result)
            state = self.tracker.update_state(state, result.processed_content, index)

            if index < total - 1 and self.delay_seconds > 0:
                self.sleep(self.delay_seconds)

        return ProcessingRun(results=results, final_state=state, cancelled=cancelled)

    def generate(self, per_unit_call: GenerateFn, context: str, content: str) -> GenerationOutcome:
        """Call the generation service with bounded retries; never raises."""
        wait = (
            wait_exponential(multiplier=self.retry_wait_seconds, min=self.retry_wait_seconds, max=self.retry_wait_seconds * 4)
            if self.retry_wait_seconds > 0 else wait_none()
        )
        retryer = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait,
            retry=retry_if_exception_type(GenerationError),
            sleep=self.sleep,
        )

        try:
            text = retryer(self._call_once, per_unit_call, context, content)
        except RetryError as e:
            error = e.last_attempt.exception()
            return GenerationOutcome(
                ok=False,
                error=str(error) or type(error).__name__,
                attempts=e.last_attempt.attempt_number,
            )

        return GenerationOutcome(ok=True, text=text, attempts=retryer.statistics.get("attempt_number", 1))

    @staticmethod
    def _call_once(per_unit_call: GenerateFn, context: str, content: str) -> str:
        try:
            text = per_unit_call(context, content)
        except GenerationError:
            raise
        except Exception as e:
            # Network, HTTP and SDK errors are all transient failures of this unit
            raise GenerationError(f"{type(e).__name__}: {e}") from e

        if not text or not text.strip():
            raise GenerationError("Empty response from generation service")
        return text
