"""Per-resource single-flight guards.

Ingestion and generation are both long-running jobs keyed by an id (file
id, chat session id).  :class:`KeyedGuard` lets at most one job hold a key
at a time; a second caller is rejected with :class:`ResourceBusyError`
instead of being queued, so two runs can never interleave status updates
or persisted turns for the same resource.

The guard relies on the single-threaded asyncio event loop: the
check-and-add in :meth:`KeyedGuard.hold` contains no ``await``, so no
other task can slip in between.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog

from src.utils.errors import ResourceBusyError
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


class KeyedGuard:
    """Reject-if-busy mutual exclusion keyed by string ids."""

    def __init__(self, resource_kind: str) -> None:
        self._resource_kind = resource_kind
        self._active: set[str] = set()

    def is_busy(self, key: str) -> bool:
        return key in self._active

    @property
    def active_keys(self) -> frozenset[str]:
        return frozenset(self._active)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold *key* for the duration of the ``async with`` block.

        Raises
        ------
        ResourceBusyError
            If another job already holds *key*.
        """
        if key in self._active:
            _logger.warning("resource_busy", kind=self._resource_kind, key=key)
            raise ResourceBusyError(
                f"A {self._resource_kind} job is already running for {key}"
            )
        self._active.add(key)
        try:
            yield
        finally:
            self._active.discard(key)
