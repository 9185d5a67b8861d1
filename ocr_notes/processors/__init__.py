from .fallback import format_fallback
from .sequential import GenerationOutcome, SequentialProcessor

__all__ = ["format_fallback", "GenerationOutcome", "SequentialProcessor"]
