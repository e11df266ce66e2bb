"""Single-shot LLM call.

The classifiers call the model once per analysis. There is no retry: a
failed call is converted to a plain exception and the caller degrades to
"no suggestion".
"""

from __future__ import annotations

from nexticket.infrastructure.settings import GEMINI_MAX_TOKENS, GEMINI_TEMPERATURE
from nexticket.llm.gemini import get_gemini_model
from nexticket.observability.logging import get_logger
from nexticket.observability.telemetry import counter

logger = get_logger(__name__)


def call_llm(
    prompt: str,
    counter_prefix: str = "llm",
    system_instruction: str | None = None,
    json_output: bool = True,
) -> str:
    """Call the model once and return the response text.

    Args:
        prompt: The prompt to send to the model.
        counter_prefix: Telemetry counter prefix (e.g., "ticket", "bill").
        system_instruction: Optional system instruction.
        json_output: Ask for application/json output.

    Raises:
        TimeoutError: On deadline exceeded.
        ConnectionError: On service unavailable or internal error.
        OSError: On resource exhausted / rate limited.
        Exception: On anything else (caller handles).
    """
    from google.api_core.exceptions import (
        DeadlineExceeded,
        InternalServerError,
        ResourceExhausted,
        ServiceUnavailable,
    )

    model = get_gemini_model(system_instruction)

    generation_config = {
        "temperature": GEMINI_TEMPERATURE,
        "max_output_tokens": GEMINI_MAX_TOKENS,
    }
    if json_output:
        generation_config["response_mime_type"] = "application/json"

    counter(f"analysis.{counter_prefix}.llm_call")
    try:
        response = model.generate_content(prompt, generation_config=generation_config)
        return response.text
    except DeadlineExceeded as e:
        counter(f"analysis.{counter_prefix}.timeout")
        raise TimeoutError(f"LLM call timed out: {e}") from e
    except ServiceUnavailable as e:
        counter(f"analysis.{counter_prefix}.service_unavailable")
        raise ConnectionError(f"LLM service unavailable: {e}") from e
    except ResourceExhausted as e:
        counter(f"analysis.{counter_prefix}.rate_limited")
        raise OSError(f"LLM rate limited: {e}") from e
    except InternalServerError as e:
        counter(f"analysis.{counter_prefix}.internal_error")
        raise ConnectionError(f"LLM internal error: {e}") from e
