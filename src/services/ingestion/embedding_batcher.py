"""Batched embedding of chunk texts and queries.

Sends texts to the embedding model in fixed-size batches, strictly one
batch at a time with a short pause in between to stay under provider rate
limits.  Output order matches input order.  Any batch failure aborts the
whole call; there is no partial result.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import structlog

from src.utils.cancellation import CancellationToken
from src.utils.errors import OperationCancelledError, RAGError

if TYPE_CHECKING:
    from src.providers.llm.factory import LLMClientFactory

logger = structlog.get_logger(logger_name=__name__)

ProgressCallback = Callable[[int, int], Awaitable[None]]
SleepFn = Callable[[float], Awaitable[Any]]


class EmbeddingBatcher:
    """Turns texts into vectors through whichever provider serves *model*.

    Parameters
    ----------
    client_factory:
        Resolves the LLM client for an embedding model id.
    batch_size:
        Texts per embedding request (default 10).
    batch_delay:
        Seconds to pause between consecutive batches (default 0.05).
    sleep:
        Awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        client_factory: LLMClientFactory,
        batch_size: int = 10,
        batch_delay: float = 0.05,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._factory = client_factory
        self._batch_size = batch_size
        self._batch_delay = batch_delay
        self._sleep = sleep

    async def embed(
        self,
        texts: list[str],
        model: str,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> list[list[float]]:
        """Embed *texts* in order, one vector per text.

        Parameters
        ----------
        texts:
            Texts to embed.
        model:
            Embedding model id; selects the provider.
        on_progress:
            Awaited after each batch with ``(embedded_so_far, total)``.
        cancel_token:
            Checked before every batch.

        Raises
        ------
        RAGError
            If any batch fails or returns the wrong number of vectors.
        OperationCancelledError
            If *cancel_token* is cancelled between batches.
        """
        if not texts:
            return []

        try:
            client = self._factory.get_client_for_model(model)
        except Exception as exc:
            raise RAGError(f"Failed to generate embeddings: {exc}") from exc

        total = len(texts)
        vectors: list[list[float]] = []
        for start in range(0, total, self._batch_size):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            if start > 0 and self._batch_delay > 0:
                await self._sleep(self._batch_delay)

            batch = texts[start : start + self._batch_size]
            try:
                batch_vectors = await client.embed(batch, model)
            except OperationCancelledError:
                raise
            except Exception as exc:
                logger.error(
                    "embedding_batch_failed",
                    model=model,
                    batch_start=start,
                    batch_size=len(batch),
                    error=str(exc),
                )
                raise RAGError(
                    f"Failed to generate embeddings: {exc}",
                    provider_name=client.get_provider_name(),
                ) from exc

            if len(batch_vectors) != len(batch):
                raise RAGError(
                    f"Failed to generate embeddings: expected {len(batch)} vectors, "
                    f"got {len(batch_vectors)}",
                    provider_name=client.get_provider_name(),
                )
            vectors.extend(batch_vectors)

            if on_progress is not None:
                await on_progress(len(vectors), total)

        logger.debug("texts_embedded", model=model, count=total)
        return vectors

    async def embed_query(self, text: str, model: str) -> list[float]:
        """Embed a single query string."""
        vectors = await self.embed([text], model)
        return vectors[0]
