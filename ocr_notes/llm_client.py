"""
Generation-service client that turns a unit of OCR text into HTML notes.
"""

import logging
from typing import Optional

from .config import (
    GENERATION_API_KEY,
    GENERATION_BASE_URL,
    GENERATION_MAX_OUTPUT_TOKENS,
    GENERATION_MODEL,
    GENERATION_TEMPERATURE,
    GOOGLE_API_KEY,
)
from .exceptions import GenerationError

logger = logging.getLogger(__name__)

NOTES_RULES = """
RULES:
1. Use ONLY HTML formatting (no Markdown)
2. Include ALL information from the input text - DO NOT omit or summarize anything
3. Use simple language (7th grade level)
4. Break down complex concepts into easy-to-understand points
5. Wrap key terms and main concepts in <strong> tags
6. Use proper HTML structure with consistent formatting
7. Continue exact numbering and formatting from previous parts

FORMATTING REQUIREMENTS:
- Main headings: <h1><span style="text-decoration: underline;"><span style="color: rgb(71, 0, 0); text-decoration: underline;">Title</span></span></h1>
- Section headings: <h2><span style="text-decoration: underline;"><span style="color: rgb(26, 1, 157); text-decoration: underline;">Section</span></span></h2>
- Sub-headings: <h3><span style="text-decoration: underline;"><span style="color: rgb(52, 73, 94); text-decoration: underline;">Sub-section</span></span></h3>
- Paragraphs: <p>Content with <strong>key terms</strong></p>

THREE-LEVEL BULLET LISTS:
- Level 1: <ul><li>Main point with <strong>key terms</strong></li></ul>
- Level 2: <ul><li>Main point<ul><li>Sub-point with details</li></ul></li></ul>
- Level 3: <ul><li>Main point<ul><li>Sub-point<ul><li>Detailed sub-point</li></ul></li></ul></li></ul>

THREE-LEVEL NUMBERED LISTS:
- Level 1: <ol><li>First main item with <strong>key terms</strong></li></ol>
- Level 2: <ol><li>Main item<ol><li>Sub-item with details</li></ol></li></ol>
- Level 3: <ol><li>Main item<ol><li>Sub-item<ol><li>Detailed sub-item</li></ol></li></ol></li></ol>

CRITICAL: Preserve ALL content. Every sentence, every concept, every detail from the input must be included in your output.
"""


def build_system_prompt(context: str) -> str:
    """Wrap the continuation context with the note-taking instructions."""
    return (
        "You are an expert note creator. Create detailed and complete HTML-formatted notes "
        "from PDF text in simple language, as if explaining to a 7th-grade student.\n\n"
        f"{context}\n{NOTES_RULES}"
    )


class GenerationClient:
    """
    Client for the text-generation service.

    Gemini models go through google-generativeai; every other model name is
    sent to an OpenAI-compatible chat completions endpoint (OpenAI itself, or
    Groq through ``base_url``).
    """

    def __init__(
        self,
        model_name: str = GENERATION_MODEL,
        api_key: Optional[str] = None,
        base_url: Optional[str] = GENERATION_BASE_URL,
        max_tokens: int = GENERATION_MAX_OUTPUT_TOKENS,
        temperature: float = GENERATION_TEMPERATURE,
    ):
        """
        Initialize the generation client.

        Args:
            model_name: Name of the model to use
            api_key: API key for the model provider
            base_url: OpenAI-compatible endpoint (ignored for Gemini)
            max_tokens: Maximum tokens in the response
            temperature: Temperature for generation (lower = more deterministic)
        """
        self.model_name = model_name
        self.is_gemini = "gemini" in model_name.lower()
        self.api_key = api_key or (GOOGLE_API_KEY if self.is_gemini else GENERATION_API_KEY)

        if not self.api_key:
            raise ValueError(
                "API key not provided. Set it in the constructor or as "
                "GENERATION_API_KEY, GROQ_API_KEY, OPENAI_API_KEY or GOOGLE_API_KEY."
            )

        self.base_url = base_url
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._init_client()

    def _init_client(self):
        if self.is_gemini:
            self._init_gemini_client()
        else:
            self._init_openai_client()

    def _init_gemini_client(self):
        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai package not installed. "
                "Install it with: pip install google-generativeai"
            )

        genai.configure(api_key=self.api_key)
        self.client = genai
        logger.info(f"Initialized Gemini client with model: {self.model_name}")

    def _init_openai_client(self):
        try:
            from openai import OpenAI
        except ImportError:
            raise ImportError(
                "openai package not installed. "
                "Install it with: pip install openai"
            )

        self.client = OpenAI(api_key=self.api_key, base_url=self.base_url)
        logger.info(f"Initialized OpenAI-compatible client with model: {self.model_name}")

    def generate(self, system_context: str, unit_source_text: str) -> str:
        """
        Format one unit of source text.

        Args:
            system_context: Continuation context for this unit
            unit_source_text: The unit's OCR text

        Returns:
            HTML notes for the unit

        Raises:
            GenerationError: If the service returns no usable text
        """
        system_prompt = build_system_prompt(system_context)
        user_prompt = (
            "Create complete and detailed HTML-formatted notes from this content. "
            f"Include ALL information and maintain the formatting hierarchy:\n\n{unit_source_text}"
        )

        if self.is_gemini:
            text = self._call_gemini_api(system_prompt, user_prompt)
        else:
            text = self._call_openai_api(system_prompt, user_prompt)

        if not text or not text.strip():
            raise GenerationError("Empty response from generation service")

        logger.info(f"Received {len(text)} characters from {self.model_name}")
        return text

    def _call_gemini_api(self, system_prompt: str, user_prompt: str) -> str:
        try:
            model = self.client.GenerativeModel(
                model_name=self.model_name,
                system_instruction=system_prompt,
                generation_config={
                    "max_output_tokens": self.max_tokens,
                    "temperature": self.temperature,
                },
            )
            response = model.generate_content(user_prompt)

            if not hasattr(response, "text"):
                raise GenerationError(f"Unexpected response format: {response}")

            return response.text

        except Exception as e:
            logger.error(f"Error calling Gemini API: {str(e)}")
            raise

    def _call_openai_api(self, system_prompt: str, user_prompt: str) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )

            return response.choices[0].message.content

        except Exception as e:
            logger.error(f"Error calling OpenAI-compatible API: {str(e)}")
            raise
