"""In-process event sink with per-event listener callbacks.

Pipelines emit named events (``file-processing-progress``,
``chat-stream-chunk-{sessionId}`` ...) and the bus fans each one out to
the callbacks registered for that name, plus any wildcard (``"*"``)
listeners.

    Pipeline ──emit()──→ EventBus ──callback()──→ CLI printer
                                  ──callback()──→ (any other listener)

Listeners are keyed by event name so concurrent sessions never see each
other's chunks.  A listener that raises is logged and skipped; the
pipeline that emitted the event keeps going.  Both sync and async
callbacks are supported.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import structlog

from src.interfaces.event_sink import FILE_PROGRESS_EVENT, IEventSink
from src.utils.logging import get_logger

WILDCARD = "*"

Listener = Callable[[str, dict[str, Any]], Any]


class EventBus(IEventSink):
    """Observer-style :class:`IEventSink`.

    Also remembers the latest ``file-processing-progress`` payload per file
    so late subscribers can ask where an ingestion job stands.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}
        self._file_progress: dict[str, dict[str, Any]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        if event_name == FILE_PROGRESS_EVENT and "fileId" in payload:
            self._file_progress[payload["fileId"]] = dict(payload)

        self._logger.debug("event_emitted", event=event_name)

        listeners = [*self._listeners.get(event_name, []), *self._listeners.get(WILDCARD, [])]
        for callback in listeners:
            try:
                result = callback(event_name, payload)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    event=event_name,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )

    def subscribe(self, event_name: str, callback: Listener) -> None:
        """Register *callback* for *event_name* (``"*"`` for every event).

        The callback receives ``(event_name, payload)``.
        """
        listeners = self._listeners.setdefault(event_name, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug(
                "listener_registered", event=event_name, total_listeners=len(listeners)
            )

    def unsubscribe(self, event_name: str, callback: Listener) -> None:
        listeners = self._listeners.get(event_name, [])
        if callback in listeners:
            listeners.remove(callback)
            if not listeners:
                del self._listeners[event_name]

    def get_file_progress(self, file_id: str) -> dict[str, Any] | None:
        """Last progress payload emitted for *file_id*, if any."""
        progress = self._file_progress.get(file_id)
        return dict(progress) if progress is not None else None
