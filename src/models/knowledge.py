"""Persistent records of the desktop app: files, knowledge bases, assistants and chats.

These mirror the rows held by the relational store
(:mod:`src.providers.storage.sqlite_storage_provider`).  All models are
frozen; status changes produce new instances via ``model_copy``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# IngestionStatus -- the per-file state machine
# ---------------------------------------------------------------------------
class IngestionStatus(str, Enum):  # noqa: UP042
    """Lifecycle of a managed file inside a knowledge base.

        PENDING → PROCESSING → INDEXING → INDEXED
                        ↘           ↘
                          ERROR  ←────

    INDEXED and ERROR are terminal for a run; a new ingestion run may move
    either of them back to PROCESSING.
    """

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    INDEXING = "INDEXING"
    INDEXED = "INDEXED"
    ERROR = "ERROR"

    def can_transition_to(self, target: IngestionStatus) -> bool:
        return target in _ALLOWED_TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return self in (IngestionStatus.INDEXED, IngestionStatus.ERROR)


_ALLOWED_TRANSITIONS: dict[IngestionStatus, frozenset[IngestionStatus]] = {
    IngestionStatus.PENDING: frozenset({IngestionStatus.PROCESSING, IngestionStatus.ERROR}),
    IngestionStatus.PROCESSING: frozenset({IngestionStatus.INDEXING, IngestionStatus.ERROR}),
    IngestionStatus.INDEXING: frozenset({IngestionStatus.INDEXED, IngestionStatus.ERROR}),
    IngestionStatus.INDEXED: frozenset({IngestionStatus.PROCESSING}),
    IngestionStatus.ERROR: frozenset({IngestionStatus.PROCESSING}),
}


class ManagedFile(BaseModel):
    """A document registered with the app."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    path: str = Field(description="Absolute path of the document on disk.")
    size: int = Field(default=0, ge=0)
    mime_type: str = Field(default="text/plain")
    status: IngestionStatus = IngestionStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == "application/pdf" or self.path.lower().endswith(".pdf")


class KnowledgeBase(BaseModel):
    """A named, searchable collection of embedded documents.

    ``embedding_model`` and ``vector_size`` are fixed at creation; every
    vector in the backing collection shares ``vector_size``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    embedding_model: str
    vector_size: int = Field(gt=0)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def collection_name(self) -> str:
        return collection_name_for(self.id)


def collection_name_for(knowledge_base_id: str) -> str:
    """Deterministic vector-index collection name for a knowledge base."""
    return f"knowledge_base_{knowledge_base_id}"


class Assistant(BaseModel):
    """A configured chat persona bound to a model and zero or more knowledge bases."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    model: str
    system_prompt: str = ""
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)
    knowledge_base_ids: tuple[str, ...] = ()
    created_at: datetime = Field(default_factory=utc_now)


class ChatSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    assistant_id: str
    title: str = "New chat"
    created_at: datetime = Field(default_factory=utc_now)


class ChatMessage(BaseModel):
    """One persisted turn of a chat session.  Append-only."""

    model_config = ConfigDict(frozen=True)

    id: str
    session_id: str
    role: Literal["user", "assistant"]
    content: str
    created_at: datetime = Field(default_factory=utc_now)
