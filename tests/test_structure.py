"""
Tests for heading and section analysis.
"""

import sys
import unittest
from pathlib import Path

# Add the project root to the Python path
sys.path.append(str(Path(__file__).parent.parent))

from ocr_notes.exceptions import InvalidSourceError
from ocr_notes.structure import StructureAnalyzer, analyze, classify_line, page_number_at


STRUCTURED_TEXT = (
    "=== PAGE 1 OCR START ===\n"
    "CHAPTER 1 INTRODUCTION\n"
    "This chapter explains the basic ideas behind photosynthesis in green plants.\n"
    "1.1 Light Reactions\n"
    "Light energy is captured by chlorophyll molecules inside the chloroplast.\n"
    "=== PAGE 1 OCR END ===\n"
    "\n"
    "=== PAGE 2 OCR START ===\n"
    "1.1.1 Photosystems\n"
    "There are two photosystems that work together in sequence.\n"
    "CHAPTER 2 RESPIRATION\n"
    "Cells break down glucose to release energy for their activities.\n"
    "=== PAGE 2 OCR END ===\n"
)

UNSTRUCTURED_TEXT = (
    "=== PAGE 1 OCR START ===\n"
    "the first page talks about water and soil.\n"
    "=== PAGE 1 OCR END ===\n"
    "=== PAGE 2 OCR START ===\n"
    "the second page talks about sunlight.\n"
    "=== PAGE 2 OCR END ===\n"
)


class TestClassifyLine(unittest.TestCase):
    """Tests for the ordered heading rules."""

    def test_levels(self):
        self.assertEqual(classify_line("CHAPTER 3"), 1)
        self.assertEqual(classify_line("INTRODUCTION TO BIOLOGY"), 1)
        self.assertEqual(classify_line("1.2 Methods"), 2)
        self.assertEqual(classify_line("Background"), 2)
        self.assertEqual(classify_line("1.2.3 details of the method"), 3)
        self.assertEqual(classify_line("Short Title"), 3)

    def test_not_headings(self):
        self.assertIsNone(classify_line("This is an ordinary sentence."))
        self.assertIsNone(classify_line(""))
        self.assertIsNone(classify_line("x"))
        self.assertIsNone(classify_line("=== PAGE 4 OCR START ==="))
        self.assertIsNone(classify_line("=== PAGE 4 OCR END ==="))

    def test_first_match_wins(self):
        """A line matching several tiers takes the highest one."""
        # Also matches the "Word N" level-3 rule
        self.assertEqual(classify_line("Section 2 Overview"), 1)


class TestStructureAnalyzer(unittest.TestCase):
    """Tests for StructureAnalyzer."""

    def test_headings_and_hierarchy(self):
        structure = analyze(STRUCTURED_TEXT)

        texts = [(h.level, h.text) for h in structure.headings]
        self.assertEqual(texts, [
            (1, "CHAPTER 1 INTRODUCTION"),
            (2, "1.1 Light Reactions"),
            (3, "1.1.1 Photosystems"),
            (1, "CHAPTER 2 RESPIRATION"),
        ])

        photosystems = structure.headings[2]
        self.assertEqual(
            [h.text for h in structure.ancestry(photosystems)],
            ["CHAPTER 1 INTRODUCTION", "1.1 Light Reactions", "1.1.1 Photosystems"],
        )
        self.assertEqual(structure.headings[0].children, [1])
        self.assertIsNone(structure.headings[3].parent)

    def test_parent_invariant(self):
        structure = analyze(STRUCTURED_TEXT)
        for heading in structure.headings:
            parent = structure.parent_of(heading)
            if parent is not None:
                self.assertLess(parent.level, heading.level)
                self.assertLessEqual(parent.start_index, heading.start_index)

    def test_heading_offsets_match_source(self):
        structure = analyze(STRUCTURED_TEXT)
        for heading in structure.headings:
            self.assertEqual(
                STRUCTURED_TEXT[heading.start_index:heading.end_index].strip(),
                heading.text,
            )

    def test_sections_partition_source(self):
        structure = analyze(STRUCTURED_TEXT)

        self.assertEqual("".join(s.content for s in structure.sections), STRUCTURED_TEXT)
        for previous, current in zip(structure.sections, structure.sections[1:]):
            self.assertEqual(previous.end_index, current.start_index)
        self.assertEqual(structure.total_length, len(STRUCTURED_TEXT))

    def test_page_numbers(self):
        structure = analyze(STRUCTURED_TEXT)

        self.assertEqual(len(structure.page_breaks), 2)
        pages = [s.page_number for s in structure.sections]
        self.assertEqual(pages, [1, 1, 2, 2])
        self.assertEqual(pages, sorted(pages))

    def test_no_headings_sections_by_page(self):
        structure = analyze(UNSTRUCTURED_TEXT)

        self.assertEqual(structure.headings, [])
        self.assertEqual(len(structure.sections), 2)
        self.assertEqual(structure.sections[0].heading.text, "Page 1 Content")
        self.assertEqual(structure.sections[1].page_number, 2)
        self.assertTrue(all(s.heading.level == 1 for s in structure.sections))
        self.assertEqual("".join(s.content for s in structure.sections), UNSTRUCTURED_TEXT)

    def test_front_matter_section(self):
        text = "some words before the first heading appear here.\nCHAPTER 1\nbody text goes here.\n"
        structure = analyze(text)

        self.assertEqual(structure.sections[0].heading.text, "Front Matter")
        self.assertTrue(structure.sections[0].heading.is_synthetic)
        self.assertEqual("".join(s.content for s in structure.sections), text)

    def test_legacy_prefix_pages_without_headings(self):
        text = (
            "Page 1: the cat sat on the mat, warm and happy.\n"
            "Page 2: the dog ran far away from the house today."
        )
        structure = analyze(text)

        self.assertEqual(structure.headings, [])
        self.assertEqual([s.page_number for s in structure.sections], [1, 2])
        self.assertEqual("".join(s.content for s in structure.sections), text)

    def test_legacy_prefix_preamble_is_front_matter(self):
        text = "Page 1: some words before the first heading appear here.\nCHAPTER 1\nbody text goes here.\n"
        structure = analyze(text)

        self.assertEqual(structure.sections[0].heading.text, "Front Matter")
        self.assertEqual("".join(s.content for s in structure.sections), text)

    def test_marker_only_preamble_is_absorbed(self):
        structure = analyze(STRUCTURED_TEXT)
        self.assertEqual(structure.sections[0].start_index, 0)
        self.assertEqual(structure.sections[0].heading.text, "CHAPTER 1 INTRODUCTION")

    def test_empty_and_whitespace_text(self):
        self.assertEqual(analyze("").sections, [])
        self.assertEqual(analyze("   \n\n  ").sections, [])

    def test_non_string_input_is_fatal(self):
        analyzer = StructureAnalyzer()
        with self.assertRaises(InvalidSourceError):
            analyzer.analyze(None)
        with self.assertRaises(TypeError):
            analyzer.analyze(b"bytes are not text")

    def test_page_number_at(self):
        self.assertEqual(page_number_at(5, []), 1)
        self.assertEqual(page_number_at(0, [0, 100]), 1)
        self.assertEqual(page_number_at(150, [0, 100, 200]), 2)
        self.assertEqual(page_number_at(500, [0, 100, 200]), 3)


if __name__ == "__main__":
    unittest.main()
