"""Abstract base class for the one-way event channel to the UI.

Pipelines publish progress and streamed tokens through this sink and never
wait on a reply.  Event names used by ragdesk:

- ``file-processing-progress`` -- ``{fileId, status, progress, message}``
- ``chat-stream-chunk-{sessionId}`` -- ``{content}``
- ``chat-stream-error-{sessionId}`` -- ``{error}``
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

FILE_PROGRESS_EVENT = "file-processing-progress"


def chat_chunk_event(session_id: str) -> str:
    return f"chat-stream-chunk-{session_id}"


def chat_error_event(session_id: str) -> str:
    return f"chat-stream-error-{session_id}"


# Concrete implementation: EventBus (src/pipeline/event_bus.py)
class IEventSink(ABC):
    """Contract for publishing named events with JSON-like payloads."""

    @abstractmethod
    async def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        """Publish *payload* under *event_name*.

        Implementations must not raise on listener failures.
        """
