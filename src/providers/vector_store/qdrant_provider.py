"""Qdrant vector-index provider speaking the Qdrant REST API over httpx.

Each knowledge base owns one cosine-distance collection.  Every request
goes through :func:`src.utils.retry.request_with_retry`, so rate limits,
5xx responses and dropped connections are retried with exponential
backoff while other 4xx responses fail immediately.

Upserts are sent in batches (100 points by default) with a short pause
between batches; the first terminal failure aborts the rest.  Searches fan
out to each requested collection in turn; a collection whose search fails
is logged and skipped so one broken knowledge base cannot blank the
context for the others.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.rag import IndexedPoint, RetrievedChunk
from src.utils.errors import (
    ProviderUnavailableError,
    RAGError,
    UpstreamHTTPError,
)
from src.utils.retry import (
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_RETRIES,
    SleepFn,
    request_with_retry,
)

logger = structlog.get_logger(logger_name=__name__)

_PROVIDER_NAME = "qdrant"


class QdrantVectorStore(IVectorStoreProvider):
    """:class:`IVectorStoreProvider` backed by a Qdrant server.

    Parameters
    ----------
    http_client:
        Shared async HTTP client.  The store never closes it.
    base_url:
        Qdrant REST endpoint, e.g. ``http://localhost:6333``.
    api_key:
        Sent as the ``api-key`` header when non-empty.
    max_retries / base_delay:
        Retry policy for every request.
    upsert_batch_size / upsert_batch_delay:
        Points per upsert request and the pause between requests.
    sleep:
        Awaitable sleep used for both backoff and batch pacing.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "http://localhost:6333",
        api_key: str = "",
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY,
        upsert_batch_size: int = 100,
        upsert_batch_delay: float = 0.1,
        timeout: float = 30.0,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._http = http_client
        self._base_url = base_url.rstrip("/")
        self._headers = {"Content-Type": "application/json"}
        if api_key:
            self._headers["api-key"] = api_key
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._batch_size = upsert_batch_size
        self._batch_delay = upsert_batch_delay
        self._timeout = timeout
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Collection lifecycle
    # ------------------------------------------------------------------

    async def create_collection(self, name: str, vector_size: int) -> None:
        await self._request(
            "PUT",
            f"/collections/{name}",
            json={"vectors": {"size": vector_size, "distance": "Cosine"}},
        )
        logger.info("collection_created", collection=name, vector_size=vector_size)

    async def ensure_collection(self, name: str, vector_size: int) -> bool:
        if await self.collection_exists(name):
            return False
        await self.create_collection(name, vector_size)
        return True

    async def delete_collection(self, name: str) -> None:
        await self._request("DELETE", f"/collections/{name}")
        logger.info("collection_deleted", collection=name)

    async def collection_exists(self, name: str) -> bool:
        try:
            await self._request("GET", f"/collections/{name}")
        except UpstreamHTTPError as exc:
            if exc.status_code == 404:
                return False
            raise
        return True

    async def get_collection_info(self, name: str) -> dict[str, Any]:
        data = await self._request("GET", f"/collections/{name}")
        return data.get("result") or {}

    async def list_collections(self) -> list[str]:
        data = await self._request("GET", "/collections")
        collections = (data.get("result") or {}).get("collections") or []
        return [c["name"] for c in collections if "name" in c]

    # ------------------------------------------------------------------
    # Points
    # ------------------------------------------------------------------

    async def upsert(self, collection: str, points: list[IndexedPoint]) -> int:
        written = 0
        for start in range(0, len(points), self._batch_size):
            if start > 0 and self._batch_delay > 0:
                await self._sleep(self._batch_delay)
            batch = points[start : start + self._batch_size]
            await self._request(
                "PUT",
                f"/collections/{collection}/points",
                params={"wait": "true"},
                json={"points": [p.to_wire() for p in batch]},
            )
            written += len(batch)
            logger.debug(
                "points_upserted",
                collection=collection,
                batch_start=start,
                batch_size=len(batch),
            )
        logger.info("upsert_complete", collection=collection, points=written)
        return written

    async def search(
        self,
        collections: list[str],
        query_vector: list[float],
        limit: int = 10,
    ) -> list[RetrievedChunk]:
        hits: list[RetrievedChunk] = []
        for collection in collections:
            try:
                data = await self._request(
                    "POST",
                    f"/collections/{collection}/points/search",
                    json={
                        "vector": query_vector,
                        "limit": limit,
                        "with_payload": True,
                        "with_vector": False,
                    },
                )
            except (RAGError, ProviderUnavailableError) as exc:
                logger.warning("collection_search_failed", collection=collection, error=str(exc))
                continue

            for point in data.get("result") or []:
                hits.append(
                    RetrievedChunk(
                        payload=point.get("payload") or {},
                        score=float(point.get("score", 0.0)),
                        collection=collection,
                    )
                )

        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[:limit]

    async def delete_points_by_file(self, collection: str, file_id: str) -> None:
        await self._request(
            "POST",
            f"/collections/{collection}/points/delete",
            params={"wait": "true"},
            json={"filter": {"must": [{"key": "file_id", "match": {"value": file_id}}]}},
        )
        logger.info("file_points_deleted", collection=collection, file_id=file_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        response = await request_with_retry(
            self._http,
            method,
            f"{self._base_url}{path}",
            max_retries=self._max_retries,
            base_delay=self._base_delay,
            sleep=self._sleep,
            provider_name=_PROVIDER_NAME,
            headers=self._headers,
            timeout=self._timeout,
            **kwargs,
        )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise RAGError(
                f"Malformed response from {method} {path}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
