"""Pipeline progress and result models.

``FileProgress`` is the payload of the ``file-processing-progress`` event
emitted by the ingestion pipeline.  ``IngestionResult`` and
``ChatTurnResult`` are what the two pipelines return to their callers.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.knowledge import ChatMessage


class ProgressStatus(str, Enum):  # noqa: UP042
    """Status value carried by progress events (distinct from the stored file status)."""

    PROCESSING = "PROCESSING"
    INDEXING = "INDEXING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


class FileProgress(BaseModel):
    model_config = ConfigDict(frozen=True)

    file_id: str
    status: ProgressStatus
    progress: int = Field(ge=0, le=100)
    message: str

    def to_event_payload(self) -> dict[str, Any]:
        """Return the camelCase payload consumed by the UI."""
        return {
            "fileId": self.file_id,
            "status": self.status.value,
            "progress": self.progress,
            "message": self.message,
        }


class IngestionResult(BaseModel):
    """Summary of a successful ingestion run."""

    model_config = ConfigDict(frozen=True)

    file_id: str
    knowledge_base_id: str
    collection: str
    chunk_count: int = Field(ge=0)
    elapsed_ms: int = Field(default=0, ge=0)


class ChatTurnResult(BaseModel):
    """Summary of a completed chat turn."""

    model_config = ConfigDict(frozen=True)

    user_message: ChatMessage
    assistant_message: ChatMessage
    context_used: bool = False
    retrieved_count: int = 0
    web_result_count: int = 0
