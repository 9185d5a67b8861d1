import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Generation service configuration
GENERATION_MODEL = os.getenv("GENERATION_MODEL", "llama-3.3-70b-versatile")
GROQ_BASE_URL = "https://api.groq.com/openai/v1"
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
GENERATION_API_KEY = (
    os.getenv("GENERATION_API_KEY")
    or GROQ_API_KEY
    or os.getenv("OPENAI_API_KEY")
)
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")


def default_base_url(api_key, groq_api_key=GROQ_API_KEY):
    """Groq endpoint only when the key in use is the Groq key; otherwise the SDK default (None)."""
    if api_key and api_key == groq_api_key:
        return GROQ_BASE_URL
    return None


GENERATION_BASE_URL = os.getenv("GENERATION_BASE_URL") or default_base_url(GENERATION_API_KEY)
GENERATION_TEMPERATURE = float(os.getenv("GENERATION_TEMPERATURE", "0.2"))
GENERATION_MAX_OUTPUT_TOKENS = int(os.getenv("GENERATION_MAX_OUTPUT_TOKENS", "4000"))

# Retry / rate limiting
GENERATION_MAX_ATTEMPTS = int(os.getenv("GENERATION_MAX_ATTEMPTS", "3"))
RETRY_WAIT_SECONDS = float(os.getenv("RETRY_WAIT_SECONDS", "4"))
INTER_UNIT_DELAY_SECONDS = float(os.getenv("INTER_UNIT_DELAY_SECONDS", "1.0"))

# Chunking configuration
CHUNK_MAX_TOKENS = int(os.getenv("CHUNK_MAX_TOKENS", "3500"))
CHARS_PER_TOKEN = 3.5  # Must stay fixed for a run; all size decisions share it
COVERAGE_THRESHOLD = 0.95
MIN_RECOVERY_CHARS = 100

# Continuation state / merging
FORMATTING_SAMPLE_CHARS = 1000
MIN_MERGED_LENGTH = 1000
