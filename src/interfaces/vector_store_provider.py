"""Abstract base class for vector-index providers.

One collection per knowledge base; every collection holds vectors of a
single dimension with cosine distance.  The concrete adapter speaks the
Qdrant REST protocol, but pipelines only see this contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.models.rag import IndexedPoint, RetrievedChunk


# Concrete implementation: QdrantVectorStore (src/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for collection lifecycle, batched upsert and multi-collection search."""

    @abstractmethod
    async def create_collection(self, name: str, vector_size: int) -> None:
        """Create a cosine-distance collection of *vector_size* dimensions.

        Raises
        ------
        src.utils.errors.UpstreamHTTPError
            If the index rejects the request (e.g. collection already exists).
        """

    @abstractmethod
    async def ensure_collection(self, name: str, vector_size: int) -> bool:
        """Create the collection unless it exists.  Returns ``True`` if created."""

    @abstractmethod
    async def delete_collection(self, name: str) -> None:
        """Delete a collection and every point in it."""

    @abstractmethod
    async def collection_exists(self, name: str) -> bool:
        """Return ``True`` if the collection exists, ``False`` on a 404."""

    @abstractmethod
    async def get_collection_info(self, name: str) -> dict[str, Any]:
        """Return the index's description of the collection."""

    @abstractmethod
    async def list_collections(self) -> list[str]:
        """Return the names of all collections."""

    @abstractmethod
    async def upsert(self, collection: str, points: list[IndexedPoint]) -> int:
        """Insert or replace *points* in batches.

        Returns
        -------
        int
            Number of points written.

        Raises
        ------
        src.utils.errors.RAGError
            On the first batch that fails terminally; later batches are not sent.
        """

    @abstractmethod
    async def search(
        self,
        collections: list[str],
        query_vector: list[float],
        limit: int = 10,
    ) -> list[RetrievedChunk]:
        """Search several collections and merge the hits.

        Returns
        -------
        list[RetrievedChunk]
            At most *limit* hits sorted by descending score.  A collection
            whose search fails contributes nothing.
        """

    @abstractmethod
    async def delete_points_by_file(self, collection: str, file_id: str) -> None:
        """Remove every point whose payload ``file_id`` equals *file_id*."""
