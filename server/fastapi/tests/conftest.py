import pytest
from unittest.mock import AsyncMock, patch
from langchain_core.messages import AIMessage

from models import Location

PARIS = Location(name="Paris, France", latitude=48.8566, longitude=2.3522)


class FakeWriter:
    """Captures stream events for assertion."""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    def events_of_type(self, event_type: str) -> list[dict]:
        return [e for e in self.events if e.get("type") == event_type]


@pytest.fixture
def writer():
    return FakeWriter()


@pytest.fixture
def mock_stream_writer(writer):
    """Patches get_stream_writer to return our FakeWriter."""
    with patch("graph.get_stream_writer", return_value=writer):
        yield writer


@pytest.fixture
def paris():
    return PARIS


@pytest.fixture
def mock_mcp():
    """Patches the relay call used by every tool."""
    with patch("mcp_client.call_mcp_tool", new_callable=AsyncMock) as mock:
        yield mock


def make_ai_message(content: str = "", tool_calls: list | None = None) -> AIMessage:
    """Helper to create an AIMessage with optional tool_calls."""
    msg = AIMessage(content=content)
    if tool_calls:
        msg.tool_calls = tool_calls
    return msg


def make_state(messages: list | None = None, location: Location = PARIS, iteration_count: int = 0) -> dict:
    return {
        "messages": messages or [],
        "location": location,
        "iteration_count": iteration_count,
    }
