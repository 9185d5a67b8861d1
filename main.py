#!/usr/bin/env python3
import os
import argparse
import logging
import sys

from ocr_notes.config import CHUNK_MAX_TOKENS
from ocr_notes.exceptions import GenerationError
from ocr_notes.orchestrator import NotesPipeline, process_file

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler("ocr_notes.log")
    ]
)
logger = logging.getLogger(__name__)


def offline_generate(system_context: str, unit_source_text: str) -> str:
    """Generation stand-in that always declines, so every unit uses fallback formatting."""
    raise GenerationError("offline mode: generation service disabled")


def main():
    """
    Main entry point for OCR notes generation.
    """
    parser = argparse.ArgumentParser(
        description="Turn page-marked OCR text into merged HTML notes"
    )

    parser.add_argument(
        "-i", "--input",
        required=True,
        help="Path to the OCR text file"
    )

    parser.add_argument(
        "-o", "--output",
        help="Path to save the HTML output. If not provided, will use the input filename with .html extension."
    )

    parser.add_argument(
        "--mode",
        choices=["chunked", "pagewise"],
        default="chunked",
        help="Process structure-aware chunks (default) or one page at a time"
    )

    parser.add_argument(
        "--max-tokens",
        type=int,
        default=CHUNK_MAX_TOKENS,
        help=f"Token budget per generation request (default: {CHUNK_MAX_TOKENS})"
    )

    parser.add_argument(
        "--offline",
        action="store_true",
        help="Skip the generation service and format every unit locally"
    )

    args = parser.parse_args()

    input_path = os.path.abspath(args.input)
    if not os.path.exists(input_path):
        logger.error(f"Input file not found: {input_path}")
        sys.exit(1)

    if args.output:
        output_path = os.path.abspath(args.output)
    else:
        input_name = os.path.splitext(os.path.basename(input_path))[0]
        output_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), "output")
        output_path = os.path.join(output_dir, f"{input_name}_notes.html")

    os.makedirs(os.path.dirname(output_path), exist_ok=True)

    logger.info(f"Starting OCR notes generation on {input_path}")
    logger.info(f"Output will be saved to {output_path}")

    try:
        if args.offline:
            pipeline = NotesPipeline(
                max_tokens=args.max_tokens,
                generate=offline_generate,
                delay_seconds=0,
                max_attempts=1,
                show_progress=True,
            )
        else:
            pipeline = NotesPipeline(max_tokens=args.max_tokens, show_progress=True)

        process_file(input_path, output_path, mode=args.mode, pipeline=pipeline)
        logger.info(f"Processing complete. Results saved to {output_path}")
    except Exception as e:
        logger.error(f"Error during processing: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
