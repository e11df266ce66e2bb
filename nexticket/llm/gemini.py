"""
Gemini model manager.

One shared model per system instruction. Two backends are supported:
  1. Vertex AI SDK (deployed) - uses GOOGLE_CLOUD_PROJECT + service account
  2. google-generativeai (local dev) - uses GOOGLE_API_KEY
"""

from __future__ import annotations

import os
from functools import lru_cache

from nexticket.infrastructure.settings import GEMINI_LOCATION, GEMINI_MODEL, GOOGLE_CLOUD_PROJECT
from nexticket.observability.logging import get_logger

logger = get_logger(__name__)

# "vertexai" or "genai", set by the first successful init
_backend: str | None = None


class GeminiInitializationError(RuntimeError):
    """Raised when no Gemini backend can be initialized."""


def credentials_available() -> bool:
    """True when either backend has what it needs to authenticate."""
    return bool(
        os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT or os.getenv("GOOGLE_API_KEY")
    )


def _init_backend() -> str:
    global _backend
    if _backend is not None:
        return _backend

    # Read env vars fresh (settings may be stale if loaded before dotenv)
    project = os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT
    location = os.getenv("GEMINI_LOCATION", "") or GEMINI_LOCATION or "us-central1"

    if project:
        try:
            import vertexai

            vertexai.init(project=project, location=location)
            _backend = "vertexai"
            logger.info(
                "Initialized Gemini backend (Vertex AI): project=%s, location=%s, model=%s",
                project,
                location,
                GEMINI_MODEL,
            )
            return _backend
        except ImportError:
            logger.info("Vertex AI SDK not installed, trying google-generativeai")

    api_key = os.getenv("GOOGLE_API_KEY")
    if not api_key:
        raise GeminiInitializationError(
            "Neither GOOGLE_CLOUD_PROJECT (Vertex AI) nor GOOGLE_API_KEY is configured"
        )

    try:
        import google.generativeai as genai
    except ImportError as e:
        raise GeminiInitializationError(
            "No Gemini SDK available. Install google-cloud-aiplatform or google-generativeai."
        ) from e

    genai.configure(api_key=api_key)
    _backend = "genai"
    logger.info("Initialized Gemini backend (google-generativeai): model=%s", GEMINI_MODEL)
    return _backend


@lru_cache(maxsize=4)
def get_gemini_model(system_instruction: str | None = None):
    """
    Get or create the Gemini model for a system instruction.

    System instructions are bound per model instance, so each distinct
    instruction gets its own cached model.

    Raises:
        GeminiInitializationError: If no backend can be initialized
    """
    backend = _init_backend()
    try:
        if backend == "vertexai":
            from vertexai.generative_models import GenerativeModel

            return GenerativeModel(GEMINI_MODEL, system_instruction=system_instruction)

        import google.generativeai as genai

        return genai.GenerativeModel(GEMINI_MODEL, system_instruction=system_instruction)
    except Exception as e:
        logger.error("Failed to create Gemini model: %s", e)
        raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e


def clear_model_cache() -> None:
    """Forget the cached models and backend (tests, reconfiguration)."""
    global _backend
    get_gemini_model.cache_clear()
    _backend = None
    logger.info("Cleared Gemini model cache")
