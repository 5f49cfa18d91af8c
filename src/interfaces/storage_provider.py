"""Abstract base class for the relational store.

Holds the desktop app's durable records: managed files, knowledge bases
(and which files they contain), assistants (and which knowledge bases
they use), chat sessions and their append-only message history.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.knowledge import (
    Assistant,
    ChatMessage,
    ChatSession,
    IngestionStatus,
    KnowledgeBase,
    ManagedFile,
)


# Concrete implementation: SQLiteStorageProvider (src/providers/storage/)
class IStorageProvider(ABC):
    """Async record access used by services and pipelines.

    ``get_*`` methods return ``None`` for unknown ids; callers decide
    whether that is fatal.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables if needed.  Must be called before any other method."""

    # -- Files -------------------------------------------------------------

    @abstractmethod
    async def create_file(self, file: ManagedFile) -> ManagedFile:
        """Insert a file record."""

    @abstractmethod
    async def get_file(self, file_id: str) -> ManagedFile | None:
        """Fetch a file record."""

    @abstractmethod
    async def update_file_status(self, file_id: str, status: IngestionStatus) -> None:
        """Persist a new ingestion status for *file_id*."""

    @abstractmethod
    async def list_files_for_knowledge_base(self, knowledge_base_id: str) -> list[ManagedFile]:
        """Files linked to a knowledge base, oldest first."""

    # -- Knowledge bases ---------------------------------------------------

    @abstractmethod
    async def create_knowledge_base(self, knowledge_base: KnowledgeBase) -> KnowledgeBase:
        """Insert a knowledge-base record."""

    @abstractmethod
    async def get_knowledge_base(self, knowledge_base_id: str) -> KnowledgeBase | None:
        """Fetch a knowledge-base record."""

    @abstractmethod
    async def list_knowledge_bases(self) -> list[KnowledgeBase]:
        """All knowledge bases, oldest first."""

    @abstractmethod
    async def delete_knowledge_base(self, knowledge_base_id: str) -> None:
        """Delete a knowledge base and its file/assistant links."""

    @abstractmethod
    async def add_file_to_knowledge_base(self, knowledge_base_id: str, file_id: str) -> None:
        """Link a file to a knowledge base (idempotent)."""

    @abstractmethod
    async def remove_file_from_knowledge_base(self, knowledge_base_id: str, file_id: str) -> None:
        """Unlink a file from a knowledge base."""

    # -- Assistants --------------------------------------------------------

    @abstractmethod
    async def create_assistant(self, assistant: Assistant) -> Assistant:
        """Insert an assistant and its knowledge-base links."""

    @abstractmethod
    async def get_assistant(self, assistant_id: str) -> Assistant | None:
        """Fetch an assistant with its ``knowledge_base_ids`` populated."""

    # -- Chat --------------------------------------------------------------

    @abstractmethod
    async def create_chat_session(self, session: ChatSession) -> ChatSession:
        """Insert a chat session."""

    @abstractmethod
    async def get_chat_session(self, session_id: str) -> ChatSession | None:
        """Fetch a chat session."""

    @abstractmethod
    async def get_messages_for_session(self, session_id: str) -> list[ChatMessage]:
        """All messages of a session in creation order."""

    @abstractmethod
    async def save_message(self, message: ChatMessage) -> ChatMessage:
        """Append a message to its session."""
