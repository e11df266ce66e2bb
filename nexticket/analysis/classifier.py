"""
AI analysis for records.

TicketClassifier suggests priority, category, sentiment, a summary and a
reply for a support ticket. BillAdvisor judges a household expense and
offers a savings tip. Both make exactly one Gemini call and return None on
any failure: disabled flag, missing credentials, transport error, bad JSON,
or a payload outside the closed enumerations.
"""

from __future__ import annotations

import json
import os
import re
from collections.abc import Callable

from pydantic import BaseModel, ValidationError

from nexticket.config import LLM_BODY_MAX_CHARS, LLM_TITLE_MAX_CHARS, LOCALE
from nexticket.infrastructure.settings import GEMINI_MODEL
from nexticket.llm.gemini import credentials_available
from nexticket.observability.logging import get_logger
from nexticket.observability.telemetry import counter, log_event
from nexticket.records.models import (
    Bill,
    FinanceAnalysis,
    Sentiment,
    SentimentLabel,
    Ticket,
    TicketAnalysis,
    TicketCategory,
    TicketPriority,
)
from nexticket.utils.redaction import redact_title, sanitize_for_prompt

logger = get_logger(__name__)

LLMCall = Callable[..., str]

_LANGUAGE_NAMES = {"pt-BR": "Brazilian Portuguese", "en": "English"}


def _use_llm() -> bool:
    """Check LLM feature flag at call time (not import time)."""
    return os.getenv("NEXTICKET_USE_LLM", "true").lower() == "true"


def _enum_values(enum_cls) -> str:
    return ", ".join(member.value for member in enum_cls)


def _response_language() -> str:
    return _LANGUAGE_NAMES.get(os.getenv("NEXTICKET_LOCALE") or LOCALE, "Brazilian Portuguese")


TICKET_SYSTEM_INSTRUCTION = f"""You are a senior support engineer triaging help-desk tickets.

Read the ticket title and description and return a JSON object with:
- priority: one of {_enum_values(TicketPriority)}
- category: one of {_enum_values(TicketCategory)}
- sentiment: the requester's mood, one of {_enum_values(Sentiment)}
- summary: one sentence describing the problem
- suggestedReply: a short, polite first reply to the requester

CRITICAL is reserved for outages or data loss affecting many people.
Login, password and permission problems are ACCESS.
Invoices, charges and refunds are BILLING.
Return only the JSON object."""

BILL_SYSTEM_INSTRUCTION = """You are a personal finance advisor focused on household budgets.

Judge one household expense and return a JSON object with:
- isExpensive: true if the amount looks high for this item compared to typical market prices
- savingsTip: one short, practical tip to spend less on it
- categoryInsight: one comment about spending in this category
- sentimentLabel: "Good" (reasonable), "Warning" (watch it) or "Bad" (excessive)

Return only the JSON object."""


def _strip_code_fence(response_text: str, counter_prefix: str) -> str:
    json_text = response_text.strip()
    if json_text.startswith("```"):
        counter(f"analysis.{counter_prefix}.code_fence_fallback")
        json_text = re.sub(r"^```(?:json)?\n?", "", json_text)
        json_text = re.sub(r"\n?```$", "", json_text)
    return json_text


class _Analyzer:
    """Shared flag check, call, and parse for one analysis kind."""

    counter_prefix = "llm"
    system_instruction = ""
    schema: type[BaseModel] = BaseModel

    def __init__(self, llm_call: LLMCall | None = None):
        self._llm_call = llm_call

    def _call(self, prompt: str) -> str:
        if self._llm_call is not None:
            return self._llm_call(
                prompt,
                counter_prefix=self.counter_prefix,
                system_instruction=self.system_instruction,
            )

        from nexticket.llm.client import call_llm

        return call_llm(
            prompt,
            counter_prefix=self.counter_prefix,
            system_instruction=self.system_instruction,
        )

    def _enabled(self) -> bool:
        if not _use_llm():
            counter(f"analysis.{self.counter_prefix}.llm_disabled")
            logger.info("LLM disabled (NEXTICKET_USE_LLM=false), skipping analysis")
            return False
        if not credentials_available():
            counter(f"analysis.{self.counter_prefix}.no_credentials")
            logger.warning("No Gemini credentials configured, skipping analysis")
            return False
        return True

    def _run(self, prompt: str, title: str) -> BaseModel | None:
        if not self._enabled():
            return None

        try:
            logger.info(
                "AI %s: calling %s for title='%s'",
                self.counter_prefix,
                GEMINI_MODEL,
                redact_title(title),
            )
            response_text = self._call(prompt)
            result = self._parse_response(response_text)
        except (json.JSONDecodeError, ValidationError) as e:
            counter(f"analysis.{self.counter_prefix}.parse_error")
            logger.warning("AI %s returned an unusable payload: %s", self.counter_prefix, e)
            return None
        except Exception as e:
            counter(f"analysis.{self.counter_prefix}.error")
            logger.error("AI %s call failed: %s (model=%s)", self.counter_prefix, e, GEMINI_MODEL)
            log_event(f"analysis.{self.counter_prefix}.error", error=str(e), model=GEMINI_MODEL)
            return None

        counter(f"analysis.{self.counter_prefix}.success")
        log_event(f"analysis.{self.counter_prefix}.result", model=GEMINI_MODEL)
        return result

    def _parse_response(self, response_text: str | None) -> BaseModel:
        if not response_text:
            raise json.JSONDecodeError("empty response", "", 0)
        data = json.loads(_strip_code_fence(response_text, self.counter_prefix))
        return self.schema.model_validate(data)


class TicketClassifier(_Analyzer):
    """Triage suggestion for a ticket."""

    counter_prefix = "ticket"
    system_instruction = TICKET_SYSTEM_INSTRUCTION
    schema = TicketAnalysis

    PROMPT_TEMPLATE = """Respond in {language}.
Title: {title}
Description: {description}"""

    def analyze(self, title: str, description: str) -> TicketAnalysis | None:
        prompt = self.PROMPT_TEMPLATE.format(
            language=_response_language(),
            title=sanitize_for_prompt(title, LLM_TITLE_MAX_CHARS, self.counter_prefix),
            description=sanitize_for_prompt(description, LLM_BODY_MAX_CHARS, self.counter_prefix),
        )
        return self._run(prompt, title)

    def analyze_record(self, ticket: Ticket) -> TicketAnalysis | None:
        return self.analyze(ticket.title, ticket.description)


class BillAdvisor(_Analyzer):
    """Spending advice for a bill."""

    counter_prefix = "bill"
    system_instruction = BILL_SYSTEM_INSTRUCTION
    schema = FinanceAnalysis

    PROMPT_TEMPLATE = """Respond in {language}. Amounts are in Brazilian reais (R$).
Item: {title}
Amount: R$ {amount:.2f}
Category: {category}
Allowed sentimentLabel values: {labels}"""

    def analyze(self, title: str, amount: float, category: str) -> FinanceAnalysis | None:
        prompt = self.PROMPT_TEMPLATE.format(
            language=_response_language(),
            title=sanitize_for_prompt(title, LLM_TITLE_MAX_CHARS, self.counter_prefix),
            amount=amount,
            category=category,
            labels=_enum_values(SentimentLabel),
        )
        return self._run(prompt, title)

    def analyze_record(self, bill: Bill) -> FinanceAnalysis | None:
        return self.analyze(bill.title, bill.amount, bill.category)
