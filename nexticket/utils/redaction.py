"""
Redaction helpers for logs and LLM prompts.

Provides:
- redact(): Hash sensitive strings for correlation without exposure
- redact_title(): Partially redact a record title for debugging
- sanitize_for_prompt(): Remove prompt injection patterns and truncate
"""

from __future__ import annotations

import re
from hashlib import sha256

from nexticket.observability.telemetry import counter

# Patterns that could be used for prompt injection
INJECTION_PATTERNS = [
    r"ignore\s+(previous|above|all)\s+instructions?",
    r"disregard\s+(previous|above|all)\s+instructions?",
    r"forget\s+(previous|above|all)\s+instructions?",
    r"ignore\s+as\s+instru[cç][oõ]es",
    r"new\s+instructions?:",
    r"system\s*:",
    r"assistant\s*:",
    r"\[INST\]",
    r"\[/INST\]",
    r"<\|im_start\|>",
    r"<\|im_end\|>",
]
INJECTION_REGEX = re.compile("|".join(INJECTION_PATTERNS), re.IGNORECASE)


def redact(value: str | None) -> str:
    """Return a stable hash representation of a sensitive string."""
    if not value:
        return "hash:missing"
    digest = sha256(value.encode("utf-8")).hexdigest()[:12]
    return f"hash:{digest}"


def redact_title(title: str | None, max_length: int = 30) -> str:
    """
    Partially redact a title for logging.

    Example:
        "Cannot log in to the billing portal since Monday" ->
        "Cannot log in to the billing p... (h:7a8b9c)"
    """
    if not title:
        return "(no title)"

    visible = title[:max_length] + "..." if len(title) > max_length else title
    digest = sha256(title.encode("utf-8")).hexdigest()[:6]
    return f"{visible} (h:{digest})"


def sanitize_for_prompt(text: str | None, max_length: int = 500, counter_prefix: str = "llm") -> str:
    """
    Sanitize user-provided text before including it in an LLM prompt.

    Truncates, replaces known injection phrases with [REDACTED], and strips
    characters that could break the prompt template.
    """
    if not text:
        return ""

    text = text[:max_length]

    if INJECTION_REGEX.search(text):
        counter(f"analysis.{counter_prefix}.injection_redacted")
        text = INJECTION_REGEX.sub("[REDACTED]", text)

    text = re.sub(r"[<>{}|\\]", "", text)

    return text.strip()
