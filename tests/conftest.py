"""Shared pytest fixtures for the ragdesk test suite."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from src.config.settings import Settings
from src.models.knowledge import Assistant, ChatSession, KnowledgeBase, ManagedFile
from src.providers.llm.factory import LLMClientFactory
from src.providers.storage.sqlite_storage_provider import SQLiteStorageProvider
from src.utils.errors import UnsupportedModelError
from tests.fakes import (
    TEST_VECTOR_SIZE,
    FakeLLMProvider,
    InMemoryVectorStore,
    RecordingEventSink,
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from the developer's environment and ``.env``."""
    return Settings(
        _env_file=None,
        openai_api_key="sk-test",
        database_path=str(tmp_path / "ragdesk.db"),
        embedding_batch_delay=0.0,
        upsert_batch_delay=0.0,
    )


@pytest.fixture
def fake_llm() -> FakeLLMProvider:
    return FakeLLMProvider()


@pytest.fixture
def client_factory(fake_llm: FakeLLMProvider) -> MagicMock:
    """LLMClientFactory mock that routes every known model to ``fake_llm``."""
    factory = MagicMock(spec=LLMClientFactory)

    def _route(model: str) -> FakeLLMProvider:
        if model.startswith("unknown"):
            raise UnsupportedModelError(f"Unsupported model: {model}")
        return fake_llm

    factory.get_client_for_model.side_effect = _route
    factory.get_client.return_value = fake_llm
    return factory


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def event_sink() -> RecordingEventSink:
    return RecordingEventSink()


@pytest_asyncio.fixture
async def storage(tmp_path: Path) -> SQLiteStorageProvider:
    provider = SQLiteStorageProvider(tmp_path / "ragdesk.db")
    await provider.initialize()
    return provider


@pytest.fixture
def text_file(tmp_path: Path) -> Path:
    path = tmp_path / "notes.txt"
    path.write_text(
        "Qdrant stores vectors in collections.\n\n"
        "Each knowledge base owns exactly one collection.\n\n"
        "Chunks carry the file id so a file can be removed later.",
        encoding="utf-8",
    )
    return path


@pytest_asyncio.fixture
async def knowledge_base(storage: SQLiteStorageProvider) -> KnowledgeBase:
    kb = KnowledgeBase(
        id="kb-1",
        name="Docs",
        embedding_model="text-embedding-3-small",
        vector_size=TEST_VECTOR_SIZE,
    )
    return await storage.create_knowledge_base(kb)


@pytest_asyncio.fixture
async def managed_file(
    storage: SQLiteStorageProvider, text_file: Path, knowledge_base: KnowledgeBase
) -> ManagedFile:
    managed = ManagedFile(
        id="file-1",
        name=text_file.name,
        path=str(text_file),
        size=text_file.stat().st_size,
        mime_type="text/plain",
    )
    await storage.create_file(managed)
    await storage.add_file_to_knowledge_base(knowledge_base.id, managed.id)
    return managed


@pytest_asyncio.fixture
async def chat_session(
    storage: SQLiteStorageProvider, knowledge_base: KnowledgeBase
) -> ChatSession:
    assistant = Assistant(
        id="asst-1",
        name="Helper",
        model="gpt-4",
        system_prompt="You answer questions about the user's documents.",
        knowledge_base_ids=(knowledge_base.id,),
    )
    await storage.create_assistant(assistant)
    return await storage.create_chat_session(
        ChatSession(id="session-1", assistant_id=assistant.id)
    )
