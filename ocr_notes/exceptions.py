"""Custom exceptions for the notes pipeline."""


class NotesPipelineError(Exception):
    """Base exception for pipeline errors."""
    pass


class InvalidSourceError(NotesPipelineError, TypeError):
    """Raised when the analyzer is handed something that is not OCR text."""
    pass


class GenerationError(NotesPipelineError):
    """Raised when the generation service fails or returns nothing usable."""
    pass
