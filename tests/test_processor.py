"""
Tests for the sequential processor and the fallback formatter.
"""

import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock

# Add the project root to the Python path
sys.path.append(str(Path(__file__).parent.parent))

from ocr_notes.exceptions import GenerationError
from ocr_notes.models import ContentChunk, PageUnit, ProcessingState
from ocr_notes.processors import SequentialProcessor, format_fallback


def make_chunk(index, content, pages=None):
    return ContentChunk(
        id=f"chunk-{index}",
        content=content,
        heading_context=[],
        sections=[],
        token_count=len(content) // 3,
        page_numbers=pages or [index],
    )


def make_processor(**kwargs):
    kwargs.setdefault("max_attempts", 3)
    kwargs.setdefault("retry_wait_seconds", 0)
    kwargs.setdefault("delay_seconds", 0)
    kwargs.setdefault("sleep", MagicMock())
    return SequentialProcessor(**kwargs)


class TestSequentialProcessor(unittest.TestCase):
    """Tests for the SequentialProcessor class."""

    def setUp(self):
        self.units = [
            make_chunk(1, "apples grow on trees in the orchard."),
            make_chunk(2, "bananas grow in warm places near the sea."),
            make_chunk(3, "cherries are small and red in summer."),
        ]
        self.state = ProcessingState(total_units=3)

    def test_all_units_succeed(self):
        generate = MagicMock(side_effect=[
            "<h1>Fruit</h1><h2>1. Apples</h2>",
            "<h2>2. Bananas</h2>",
            "<h2>3. Cherries</h2>",
        ])
        run = make_processor().process(self.units, self.state, generate)

        self.assertEqual([r.id for r in run.results], ["chunk-1", "chunk-2", "chunk-3"])
        self.assertTrue(all(r.success for r in run.results))
        self.assertFalse(run.cancelled)
        self.assertEqual(run.final_state.current_unit, 3)
        self.assertEqual(run.final_state.last_heading_number, 3)
        self.assertEqual(run.final_state.current_main_heading, "Fruit")

        first_context, first_text = generate.call_args_list[0][0]
        second_context, second_text = generate.call_args_list[1][0]
        self.assertIn("DOCUMENT CONTEXT", first_context)
        self.assertEqual(first_text, self.units[0].content)
        self.assertIn("CONTINUATION CONTEXT", second_context)
        self.assertIn('Current main heading: "Fruit"', second_context)
        self.assertEqual(second_text, self.units[1].content)

    def test_failed_unit_falls_back(self):
        def generate(context, text):
            if text.startswith("bananas"):
                raise ConnectionError("service unavailable")
            return f"<p>{text}</p>"

        run = make_processor().process(self.units, self.state, generate)

        self.assertEqual(len(run.results), 3)
        self.assertEqual([r.success for r in run.results], [True, False, True])
        failed = run.results[1]
        self.assertEqual(failed.processed_content, format_fallback(self.units[1]))
        self.assertIn("ConnectionError", failed.error)
        self.assertIn("bananas", failed.processed_content)
        self.assertEqual(run.results[2].processed_content, f"<p>{self.units[2].content}</p>")

    def test_retry_then_success(self):
        generate = MagicMock(side_effect=[GenerationError("rate limited"), "<p>ok</p>"])
        processor = make_processor()

        outcome = processor.generate(generate, "context", "text")

        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.text, "<p>ok</p>")
        self.assertEqual(outcome.attempts, 2)
        self.assertEqual(generate.call_count, 2)

    def test_attempts_are_bounded(self):
        generate = MagicMock(side_effect=TimeoutError("timed out"))
        outcome = make_processor(max_attempts=2).generate(generate, "context", "text")

        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.attempts, 2)
        self.assertEqual(generate.call_count, 2)
        self.assertIn("timed out", outcome.error)

    def test_empty_response_falls_back(self):
        generate = MagicMock(return_value="   ")
        run = make_processor(max_attempts=1).process(self.units[:1], ProcessingState(total_units=1), generate)

        result = run.results[0]
        self.assertFalse(result.success)
        self.assertIn("Empty response", result.error)
        self.assertTrue(result.processed_content)

    def test_cancellation_between_units(self):
        generate = MagicMock(return_value="<p>done</p>")
        calls = {"count": 0}

        def should_cancel():
            calls["count"] += 1
            return calls["count"] > 2

        run = make_processor().process(self.units, self.state, generate, should_cancel=should_cancel)

        self.assertTrue(run.cancelled)
        self.assertEqual([r.id for r in run.results], ["chunk-1", "chunk-2"])
        self.assertEqual(generate.call_count, 2)

    def test_delay_between_units(self):
        sleep = MagicMock()
        generate = MagicMock(return_value="<p>done</p>")

        make_processor(delay_seconds=1.5, sleep=sleep).process(self.units, self.state, generate)

        self.assertEqual(sleep.call_count, 2)
        sleep.assert_called_with(1.5)

    def test_progress_events(self):
        events = []
        generate = MagicMock(return_value="<p>done</p>")

        make_processor().process(self.units, self.state, generate, on_progress=events.append)

        self.assertEqual([e.current_unit for e in events], [1, 2, 3])
        self.assertTrue(all(e.phase == "processing" and e.total_units == 3 for e in events))
        self.assertIn("pages 2", events[1].message)

    def test_no_units(self):
        generate = MagicMock()
        run = make_processor().process([], ProcessingState(), generate)

        self.assertEqual(run.results, [])
        generate.assert_not_called()


class TestFallbackFormatter(unittest.TestCase):
    """Tests for format_fallback."""

    def test_bullet_list(self):
        unit = make_chunk(1, "• Chlorophyll absorbs light\n• Water is split")
        html = format_fallback(unit)

        self.assertIn("<ul><li><strong>Chlorophyll</strong> absorbs light</li>", html)
        self.assertIn("</ul>", html)

    def test_numbered_list(self):
        unit = make_chunk(1, "1. First step\n2. second step")
        html = format_fallback(unit)

        self.assertIn("<ol><li><strong>First</strong> step</li><li>second step</li></ol>", html)

    def test_heading_and_paragraph(self):
        unit = make_chunk(1, "Light Reactions\n\nthe light reactions happen in the\nthylakoid membranes.")
        html = format_fallback(unit)

        self.assertIn("<h3>", html)
        self.assertIn("Light Reactions</span></span></h3>", html)
        self.assertIn("<p>the light reactions happen in the thylakoid membranes.</p>", html)

    def test_key_terms_and_acronyms(self):
        html = format_fallback(make_chunk(1, "cells store energy as ATP and Glucose molecules."))

        self.assertIn("<strong>ATP</strong>", html)
        self.assertIn("<strong>Glucose</strong>", html)

    def test_page_header(self):
        self.assertIn("Pages 2, 3</span>", format_fallback(make_chunk(1, "text here.", pages=[2, 3])))
        self.assertIn("Page 4</span>", format_fallback(PageUnit(page_number=4, content="text here.")))

    def test_page_markers_removed(self):
        unit = PageUnit(page_number=4, content="=== PAGE 4 OCR START ===\nsome text here.\n=== PAGE 4 OCR END ===")
        html = format_fallback(unit)

        self.assertNotIn("OCR START", html)
        self.assertNotIn("OCR END", html)
        self.assertIn("<p>some text here.</p>", html)

    def test_markup_is_escaped(self):
        html = format_fallback(make_chunk(1, "if a < b & c > d then stop."))
        self.assertIn("if a &lt; b &amp; c &gt; d then stop.", html)

    def test_empty_unit_is_never_blank(self):
        html = format_fallback(PageUnit(page_number=5, content=""))
        self.assertIn("No readable text was extracted for page-5", html)


if __name__ == "__main__":
    unittest.main()
