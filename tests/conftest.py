"""Shared fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from mnemo.chat import ChatStore
from mnemo.db import Database
from mnemo.logging import configure_logger
from mnemo.memory import MemoryStore


def _make_response(content: str | None) -> Mock:
    response = Mock()
    response.choices = [Mock()]
    response.choices[0].message.content = content
    return response


@pytest.fixture(autouse=True)
def event_log(tmp_path: Path):
    """Route JSONL events to a temporary directory."""
    return configure_logger(tmp_path / "logs")


@pytest.fixture
def database(tmp_path: Path) -> Database:
    """Create an initialized database in a temporary directory."""
    database = Database(tmp_path / "test.db")
    database.init_db()
    yield database
    database.close()


@pytest.fixture
def memory_store(database: Database) -> MemoryStore:
    return MemoryStore(database)


@pytest.fixture
def chat_store(database: Database) -> ChatStore:
    return ChatStore(database)


@pytest.fixture
def make_response():
    """Factory for mock LLM responses."""
    return _make_response


@pytest.fixture
def mock_client() -> AsyncMock:
    """Create a mock Groq client."""
    return AsyncMock()
