"""Pytest configuration and shared fixtures."""
from typing import List, Optional

import pytest
from langchain_core.messages import AIMessageChunk

from config.settings import get_settings


class FakeStreamingLLM:
    """Stands in for the Gemini chat model: replays fixed fragments."""

    def __init__(self, fragments: List, error: Optional[Exception] = None):
        self.fragments = fragments
        self.error = error
        self.prompts: List[str] = []

    async def astream(self, prompt):
        self.prompts.append(prompt)
        for fragment in self.fragments:
            yield AIMessageChunk(content=fragment)
        if self.error is not None:
            raise self.error


@pytest.fixture
def fake_llm_class():
    return FakeStreamingLLM


@pytest.fixture
def api_key(monkeypatch):
    """Configure a dummy backend credential for the duration of a test."""
    monkeypatch.setenv("GOOGLE_API_KEY", "test-key")
    get_settings.cache_clear()
    yield "test-key"
    get_settings.cache_clear()


@pytest.fixture
def no_api_key(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sample_notebook():
    return [
        {"type": "sent", "text": "Hi", "timestamp": 1000},
        {"type": "received", "text": "Hello there", "timestamp": 2000},
    ]
