"""Knowledge-base lifecycle: records, collections and file membership.

A knowledge base is one relational record plus one vector collection
named ``knowledge_base_{id}``.  The collection's dimensionality comes from
the embedding model chosen at creation and never changes afterwards.
"""

from __future__ import annotations

import mimetypes
import uuid
from pathlib import Path

import structlog

from src.interfaces.storage_provider import IStorageProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.knowledge import KnowledgeBase, ManagedFile, utc_now
from src.models.pipeline import IngestionResult
from src.pipeline.ingestion_pipeline import IngestionPipeline
from src.utils.errors import (
    IngestionError,
    ProviderUnavailableError,
    RAGError,
    RecordNotFoundError,
)

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_VECTOR_SIZE = 1536

# Matched as substrings so provider-prefixed ids (``models/embedding-001``) resolve too.
_KNOWN_VECTOR_SIZES: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "embed-english-v3.0": 1024,
    "embed-multilingual-v3.0": 1024,
    "embed-english-light-v3.0": 384,
    "embed-multilingual-light-v3.0": 384,
    "embedding-001": 768,
    "text-embedding-004": 768,
    "mistral-embed": 1024,
}


def vector_size_for_model(model: str) -> int:
    """Embedding dimensionality for *model*.

    >>> vector_size_for_model("text-embedding-3-large")
    3072
    >>> vector_size_for_model("some-unknown-model")
    1536
    """
    if model in _KNOWN_VECTOR_SIZES:
        return _KNOWN_VECTOR_SIZES[model]
    for known, size in _KNOWN_VECTOR_SIZES.items():
        if known in model:
            return size
    if model.startswith("text-embedding-ada"):
        return 1536
    if "large" in model:
        return 3072
    if "small" in model:
        return 1536
    return DEFAULT_VECTOR_SIZE


class KnowledgeService:
    """Creates, fills, empties and deletes knowledge bases."""

    def __init__(
        self,
        storage: IStorageProvider,
        vector_store: IVectorStoreProvider,
        ingestion: IngestionPipeline,
    ) -> None:
        self._storage = storage
        self._vector_store = vector_store
        self._ingestion = ingestion

    async def list_knowledge_bases(self) -> list[KnowledgeBase]:
        return await self._storage.list_knowledge_bases()

    async def create_knowledge_base(
        self, name: str, embedding_model: str, description: str = ""
    ) -> KnowledgeBase:
        """Store a new knowledge base and create its empty collection.

        If the collection cannot be created the record is removed again, so
        no knowledge base exists without a collection.
        """
        knowledge_base = KnowledgeBase(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            embedding_model=embedding_model,
            vector_size=vector_size_for_model(embedding_model),
        )
        await self._storage.create_knowledge_base(knowledge_base)
        try:
            await self._vector_store.create_collection(
                knowledge_base.collection_name, knowledge_base.vector_size
            )
        except Exception:
            logger.error(
                "collection_create_failed",
                knowledge_base_id=knowledge_base.id,
                collection=knowledge_base.collection_name,
            )
            await self._storage.delete_knowledge_base(knowledge_base.id)
            raise

        logger.info(
            "knowledge_base_created",
            knowledge_base_id=knowledge_base.id,
            embedding_model=embedding_model,
            vector_size=knowledge_base.vector_size,
        )
        return knowledge_base

    async def delete_knowledge_base(self, knowledge_base_id: str) -> None:
        """Delete the collection (best effort) and then the record."""
        knowledge_base = await self._require(knowledge_base_id)
        try:
            await self._vector_store.delete_collection(knowledge_base.collection_name)
        except (RAGError, ProviderUnavailableError) as exc:
            logger.warning(
                "collection_delete_failed",
                collection=knowledge_base.collection_name,
                error=str(exc),
            )
        await self._storage.delete_knowledge_base(knowledge_base_id)
        logger.info("knowledge_base_deleted", knowledge_base_id=knowledge_base_id)

    async def register_file(self, path: str | Path) -> ManagedFile:
        """Record a document on disk as a managed file in PENDING status."""
        file_path = Path(path).expanduser().resolve()
        if not file_path.is_file():
            raise IngestionError(f"File not found: {file_path}")
        mime_type, _ = mimetypes.guess_type(file_path.name)
        managed = ManagedFile(
            id=str(uuid.uuid4()),
            name=file_path.name,
            path=str(file_path),
            size=file_path.stat().st_size,
            mime_type=mime_type or "text/plain",
            created_at=utc_now(),
        )
        return await self._storage.create_file(managed)

    async def add_file_to_knowledge_base(
        self, knowledge_base_id: str, file_id: str
    ) -> IngestionResult:
        """Link *file_id* to the knowledge base and ingest it."""
        await self._require(knowledge_base_id)
        await self._storage.add_file_to_knowledge_base(knowledge_base_id, file_id)
        return await self._ingestion.run(file_id, knowledge_base_id)

    async def remove_file_from_knowledge_base(
        self, knowledge_base_id: str, file_id: str
    ) -> None:
        """Delete the file's points from the collection, then unlink it."""
        knowledge_base = await self._require(knowledge_base_id)
        if await self._vector_store.collection_exists(knowledge_base.collection_name):
            await self._vector_store.delete_points_by_file(
                knowledge_base.collection_name, file_id
            )
        await self._storage.remove_file_from_knowledge_base(knowledge_base_id, file_id)
        logger.info(
            "file_removed_from_knowledge_base",
            knowledge_base_id=knowledge_base_id,
            file_id=file_id,
        )

    async def _require(self, knowledge_base_id: str) -> KnowledgeBase:
        knowledge_base = await self._storage.get_knowledge_base(knowledge_base_id)
        if knowledge_base is None:
            raise RecordNotFoundError(f"Knowledge base {knowledge_base_id} not found")
        return knowledge_base
