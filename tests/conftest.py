"""Shared fixtures for the support chat tests."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from support_chat.application.use_cases.chat import ChatUseCase
from support_chat.config import Settings
from support_chat.infrastructure.conversation_store import ConversationStore


def pytest_configure(config):
    """Set pytest-asyncio mode to auto so async test functions work without markers."""
    config.option.asyncio_mode = "auto"


def make_test_settings(tmp_path: Path, **overrides) -> Settings:
    """Create a Settings instance suitable for tests.

    Uses ``_env_file=None`` so a developer's real .env is never loaded.
    """
    values = {
        "azure_openai_api_key": "test-key",
        "azure_openai_endpoint": "https://test.openai.azure.com/",
        "azure_openai_api_version": "2024-02-01",
        "azure_openai_chat_deployment": "gpt-4o-mini",
        "chat_db_path": tmp_path / "chat.db",
        "environment": "test",
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture()
def store(tmp_path: Path) -> ConversationStore:
    """A ConversationStore connected to a temporary SQLite file."""
    svc = ConversationStore(db_path=tmp_path / "chat.db")
    svc.connect()
    yield svc
    svc.close()


@pytest.fixture()
def memory_store() -> ConversationStore:
    """A ConversationStore backed by an in-memory database."""
    svc = ConversationStore(db_path=":memory:")
    svc.connect()
    yield svc
    svc.close()


@pytest.fixture()
def mock_gateway() -> AsyncMock:
    """A gateway whose generate_reply returns numbered replies."""
    gateway = AsyncMock()
    gateway.generate_reply.side_effect = [f"Reply {i}" for i in range(1, 21)]
    return gateway


@pytest.fixture()
def chat_use_case(memory_store: ConversationStore, mock_gateway: AsyncMock) -> ChatUseCase:
    """A ChatUseCase wired to a real in-memory store and a mock gateway."""
    return ChatUseCase(store=memory_store, gateway=mock_gateway)
