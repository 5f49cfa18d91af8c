"""Cancellation tokens and a cancellable chat stream.

A :class:`CancellationToken` is handed to a job (ingestion run or chat
turn).  The job calls :meth:`CancellationToken.raise_if_cancelled` at its
batch boundaries; :class:`ChatStream` additionally races every pending
chunk against the token so a cancel lands mid-generation instead of after
the provider sends its next token.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from src.models.llm import ChatChunk
from src.utils.errors import OperationCancelledError


class CancellationToken:
    """One-shot cancellation flag that can also be awaited."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason = "Operation cancelled"

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str = "Operation cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError(self._reason)

    async def wait(self) -> None:
        await self._event.wait()


class ChatStream:
    """Async iterator over :class:`ChatChunk` with an explicit ``cancel()``.

    Wraps a provider's chunk iterator.  Cancelling (directly or through the
    shared token) closes the underlying provider stream and makes the next
    ``__anext__`` raise :class:`OperationCancelledError`.
    """

    def __init__(
        self,
        source: AsyncIterator[ChatChunk],
        token: CancellationToken | None = None,
    ) -> None:
        self._source = source
        self._token = token or CancellationToken()
        self._closed = False

    @property
    def token(self) -> CancellationToken:
        return self._token

    def cancel(self, reason: str = "Generation cancelled") -> None:
        self._token.cancel(reason)

    def __aiter__(self) -> ChatStream:
        return self

    async def __anext__(self) -> ChatChunk:
        if self._closed:
            raise StopAsyncIteration
        if self._token.cancelled:
            await self.aclose()
            raise OperationCancelledError(self._token.reason)

        next_chunk = asyncio.ensure_future(self._pull())
        cancel_wait = asyncio.ensure_future(self._token.wait())
        try:
            done, _ = await asyncio.wait(
                {next_chunk, cancel_wait}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancel_wait.cancel()

        if next_chunk not in done:
            next_chunk.cancel()
            # The source must be idle before it can be closed.
            await asyncio.gather(next_chunk, return_exceptions=True)
            await self.aclose()
            raise OperationCancelledError(self._token.reason)

        chunk = next_chunk.result()
        if chunk is None:
            self._closed = True
            raise StopAsyncIteration
        return chunk

    async def _pull(self) -> ChatChunk | None:
        try:
            return await self._source.__anext__()
        except StopAsyncIteration:
            return None

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        closer = getattr(self._source, "aclose", None)
        if closer is not None:
            await closer()
