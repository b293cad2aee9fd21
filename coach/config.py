import logging
import os

from dotenv import load_dotenv

load_dotenv()

# VLLM configuration (local inference, OpenAI-compatible API)
VLLM_BASE_URL = os.getenv("VLLM_BASE_URL", "http://localhost:8000/v1")
VLLM_MODEL = os.getenv("VLLM_MODEL", "")
VLLM_API_KEY = os.getenv("VLLM_API_KEY", "EMPTY")
USE_VLLM = os.getenv("USE_VLLM", "false").lower() in ("true", "1", "yes")

# OpenRouter configuration (cloud inference)
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
OPENROUTER_MODEL = os.getenv("OPENROUTER_MODEL", "")

# Legacy: COACH_MODEL applies to whichever provider is active
COACH_MODEL_LEGACY = os.getenv("COACH_MODEL", "")


def _default_provider() -> str:
    explicit = os.getenv("COACH_PROVIDER", "").strip().lower()
    if explicit in ("vllm", "openrouter"):
        return explicit
    return "vllm" if USE_VLLM else "openrouter"


PROVIDER_DEFAULT = _default_provider()

VLLM_MODEL_NAME = VLLM_MODEL or COACH_MODEL_LEGACY or "openai/gpt-oss-120b"
OPENROUTER_MODEL_NAME = OPENROUTER_MODEL or COACH_MODEL_LEGACY or "google/gemini-2.5-flash"

# Agent loop: tool call -> observe -> re-plan cycles per turn
MAX_AGENT_ITERATIONS = int(os.getenv("COACH_MAX_ITERATIONS", "6"))

# Attempts for the degraded path when the primary agent fails
MAX_RETRIES = int(os.getenv("COACH_MAX_RETRIES", "2"))
RETRY_BASE_DELAY_MS = int(os.getenv("COACH_RETRY_BASE_DELAY_MS", "1000"))

# Character budgets for the fallback prompt
PRIMARY_CONTEXT_BUDGET = int(os.getenv("COACH_PRIMARY_CONTEXT_BUDGET", "1500"))
SECONDARY_CONTEXT_BUDGET = int(os.getenv("COACH_SECONDARY_CONTEXT_BUDGET", "800"))

# Project root: directory containing coach/ package (works from any cwd)
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
LOG_FILE = os.path.join(PROJECT_ROOT, "logs", "coach.log")


def _get_version() -> str:
    version_file = os.path.join(PROJECT_ROOT, "VERSION")
    try:
        with open(version_file, "r") as f:
            return f.read().strip()
    except FileNotFoundError:
        return "0.0.0"


VERSION = _get_version()


def setup_logging(level: int = logging.INFO) -> None:
    os.makedirs(os.path.dirname(LOG_FILE), exist_ok=True)
    logging.basicConfig(
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        level=level,
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(LOG_FILE, encoding="utf-8"),
        ],
    )
