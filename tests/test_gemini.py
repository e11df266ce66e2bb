"""Tests for Gemini backend selection (no SDK calls are made)"""

from __future__ import annotations

import pytest

from nexticket.llm import gemini
from nexticket.llm.gemini import GeminiInitializationError, clear_model_cache, credentials_available


@pytest.fixture(autouse=True)
def _fresh_backend(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
    monkeypatch.setattr(gemini, "GOOGLE_CLOUD_PROJECT", "")
    clear_model_cache()
    yield
    clear_model_cache()


def test_no_credentials():
    assert credentials_available() is False


def test_api_key_is_enough(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "k")
    assert credentials_available() is True


def test_model_without_credentials_raises():
    with pytest.raises(GeminiInitializationError):
        gemini.get_gemini_model("instr")


def test_genai_backend_selected_with_api_key(monkeypatch):
    configured = {}

    class FakeModel:
        def __init__(self, name, system_instruction=None):
            self.name = name
            self.system_instruction = system_instruction

    def configure(api_key):
        configured["api_key"] = api_key

    monkeypatch.setenv("GOOGLE_API_KEY", "k")
    monkeypatch.setattr("google.generativeai.configure", configure)
    monkeypatch.setattr("google.generativeai.GenerativeModel", FakeModel)

    first = gemini.get_gemini_model("triage")
    second = gemini.get_gemini_model("triage")
    other = gemini.get_gemini_model("finance")

    assert configured == {"api_key": "k"}
    assert first is second
    assert other is not first
    assert first.system_instruction == "triage"
