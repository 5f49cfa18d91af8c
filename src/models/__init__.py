"""ragdesk domain models -- re-exports all public model classes.

    - knowledge.py -- persisted records (files, knowledge bases, assistants, chats)
    - llm.py       -- streamed chunks, model listings, provider configs
    - pipeline.py  -- progress events and pipeline results
    - rag.py       -- chunks, vector-index points, retrieval hits
"""

from __future__ import annotations

from src.models.knowledge import (
    Assistant,
    ChatMessage,
    ChatSession,
    IngestionStatus,
    KnowledgeBase,
    ManagedFile,
    collection_name_for,
)
from src.models.llm import ChatChunk, ModelInfo, ProviderConfig
from src.models.pipeline import (
    ChatTurnResult,
    FileProgress,
    IngestionResult,
    ProgressStatus,
)
from src.models.rag import Chunk, IndexedPoint, PointPayload, RetrievedChunk

__all__ = [
    "Assistant",
    "ChatChunk",
    "ChatMessage",
    "ChatSession",
    "ChatTurnResult",
    "Chunk",
    "FileProgress",
    "IndexedPoint",
    "IngestionResult",
    "IngestionStatus",
    "KnowledgeBase",
    "ManagedFile",
    "ModelInfo",
    "PointPayload",
    "ProgressStatus",
    "ProviderConfig",
    "RetrievedChunk",
    "collection_name_for",
]
