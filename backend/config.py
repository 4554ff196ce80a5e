"""Configuration management for the PDF question answering service."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json")  # "json" or "text"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173"
).split(",")

# Document Configuration
DOCUMENT_PATH = os.getenv("DOCUMENT_PATH")  # auto-loaded on startup when set
MAX_FILE_SIZE_MB = int(os.getenv("MAX_FILE_SIZE_MB", "25"))

# Generative Model Configuration
LLM_ENABLED = _env_flag("LLM_ENABLED", True)
LLM_MODEL = os.getenv("LLM_MODEL", "llama-3.1-8b-instant")
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
LLM_TOP_P = float(os.getenv("LLM_TOP_P", "0.9"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "512"))
MAX_PROMPT_TOKENS = int(os.getenv("MAX_PROMPT_TOKENS", "3000"))
TOKEN_ENCODING = "o200k_base"

# Chunking Configuration
CHUNK_TARGET_SIZE = 800  # characters
CHUNK_MAX_SIZE = 1200  # characters
CHUNK_MIN_SIZE = 200  # characters
CHUNK_OVERLAP = 100  # characters
EMIT_SHORT_TAIL = _env_flag("EMIT_SHORT_TAIL", False)

# Retrieval Configuration
TOP_K = 5
QUERY_TOP_K = 3
KEY_SENTENCE_LIMIT = 3
NO_MATCH_THRESHOLD = 0.05  # top similarity below this -> nothing found
RELEVANCE_THRESHOLD = 0.1  # results must exceed this to be used as sources
ADDITIONAL_CONTEXT_THRESHOLD = 0.2  # second result shown as extra context
PROMPT_CONTEXT_CHUNKS = 2
