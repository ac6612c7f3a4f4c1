"""
Pytest configuration and fixtures for the concierge backend tests.

Provides a controllable clock for the conversation store, a stub product
lookup, and a Flask test client with the model client mocked out.
"""

from datetime import datetime, timedelta, timezone
from typing import List
from unittest.mock import MagicMock

import pytest

from models import Message, ProductRecord, Role


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class StubLookup:
    """Product lookup returning a fixed list and remembering what it was asked."""

    def __init__(self, records: List[ProductRecord]):
        self.records = records
        self.calls = []

    def lookup(self, names):
        self.calls.append(list(names))
        return list(self.records)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def system_message():
    return Message(role=Role.SYSTEM, content="You are a helpful concierge.")


@pytest.fixture
def user_message():
    return Message(role=Role.USER, content="Find me a lamp")


@pytest.fixture
def stub_lookup_factory():
    return StubLookup


@pytest.fixture
def app_client():
    """Flask test client with a fresh store and a mocked model client."""
    from server import app
    import routes.chat as chat_routes
    from conversation_store import ConversationStore

    original = (chat_routes.conversation_store, chat_routes.llm_client, chat_routes.product_lookup)
    chat_routes.conversation_store = ConversationStore()
    chat_routes.llm_client = MagicMock()
    chat_routes.product_lookup = None

    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client

    chat_routes.conversation_store, chat_routes.llm_client, chat_routes.product_lookup = original
