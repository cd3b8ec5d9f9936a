import json
import os

import pytest

os.environ.setdefault("ENVIRONMENT", "test")

from foldera.config import get_settings
from foldera.models.signal import WorkSignal


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached; drop the cache so env overrides never leak between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeCompletionClient:
    """Records every request and answers with a canned response or error."""

    def __init__(self, response: str | None = None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls = []

    async def create_completion(self, messages, *, model, temperature, max_tokens):
        self.calls.append({
            "messages": list(messages),
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.error is not None:
            raise self.error
        return self.response


def conflicts_json(*conflicts: dict) -> str:
    return json.dumps({"conflicts": list(conflicts)})


@pytest.fixture
def double_booked_signals():
    """Gmail + Outlook events at the same instant."""
    return [
        WorkSignal(
            id="gmail:123",
            type="calendar_event",
            source="gmail",
            datetime="2024-01-15T09:00:00Z",
            content="Team standup meeting",
            author="team@example.com",
        ),
        WorkSignal(
            id="outlook:456",
            type="calendar_event",
            source="outlook",
            datetime="2024-01-15T09:00:00Z",
            content="Client presentation",
            author="client@example.com",
        ),
    ]


@pytest.fixture
def budget_signals():
    """Two documents that disagree on a figure, no calendar events."""
    return [
        WorkSignal(
            id="drive:budget-v2",
            type="document_excerpt",
            source="drive",
            content="Q3 marketing budget approved at $120,000.",
        ),
        WorkSignal(
            id="gmail:cfo-789",
            type="email",
            source="gmail",
            content="Reminder: the Q3 marketing budget is capped at $95,000.",
            author="cfo@example.com",
        ),
    ]


@pytest.fixture
def fake_client():
    """Factory: fake_client(response=...) or fake_client(error=...)."""
    return FakeCompletionClient


@pytest.fixture
def llm_json():
    """Builds a {"conflicts": [...]} completion body."""
    return conflicts_json
