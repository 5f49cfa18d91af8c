"""Unit tests for KnowledgeService and embedding-model vector sizes."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.models.knowledge import IngestionStatus, KnowledgeBase, ManagedFile
from src.models.pipeline import IngestionResult
from src.pipeline.ingestion_pipeline import IngestionPipeline
from src.providers.llm.registry import route_model
from src.providers.storage.sqlite_storage_provider import SQLiteStorageProvider
from src.services.knowledge_service import KnowledgeService, vector_size_for_model
from src.utils.errors import (
    IngestionError,
    ProviderUnavailableError,
    RAGError,
    RecordNotFoundError,
)
from tests.fakes import InMemoryVectorStore


@pytest.fixture
def ingestion() -> MagicMock:
    pipeline = MagicMock(spec=IngestionPipeline)
    pipeline.run = AsyncMock(
        return_value=IngestionResult(
            file_id="file-1",
            knowledge_base_id="kb-1",
            collection="knowledge_base_kb-1",
            chunk_count=3,
        )
    )
    return pipeline


@pytest.fixture
def service(
    storage: SQLiteStorageProvider, vector_store: InMemoryVectorStore, ingestion: MagicMock
) -> KnowledgeService:
    return KnowledgeService(storage, vector_store, ingestion)


class TestVectorSizes:
    @pytest.mark.parametrize(
        ("model", "size"),
        [
            ("text-embedding-3-small", 1536),
            ("text-embedding-3-large", 3072),
            ("text-embedding-ada-002", 1536),
            ("embed-english-v3.0", 1024),
            ("embed-multilingual-light-v3.0", 384),
            ("text-embedding-004", 768),
            ("mistral-embed", 1024),
            ("custom-large-embedder", 3072),
            ("tiny-small-embedder", 1536),
            ("nomic-embed-text", 1536),
            ("models/text-embedding-004", 768),
            ("models/embedding-001", 768),
            ("cohere/embed-english-light-v3.0", 384),
            ("cohere/embed-multilingual-v3.0", 1024),
            ("mistral-embed-2312", 1024),
        ],
    )
    def test_sizes(self, model: str, size: int) -> None:
        assert vector_size_for_model(model) == size

    @pytest.mark.parametrize("model", ["models/text-embedding-004", "models/embedding-001"])
    def test_google_listing_ids_route_and_size_consistently(self, model: str) -> None:
        assert route_model(model) == "google"
        assert vector_size_for_model(model) == 768


class TestCreateAndDelete:
    @pytest.mark.asyncio
    async def test_create_stores_record_and_collection(
        self,
        service: KnowledgeService,
        storage: SQLiteStorageProvider,
        vector_store: InMemoryVectorStore,
    ) -> None:
        kb = await service.create_knowledge_base("Papers", "text-embedding-3-large", "PDFs")

        assert kb.vector_size == 3072
        assert kb.collection_name == f"knowledge_base_{kb.id}"
        assert await storage.get_knowledge_base(kb.id) == kb
        assert vector_store.collections[kb.collection_name]["size"] == 3072
        assert [k.id for k in await service.list_knowledge_bases()] == [kb.id]

    @pytest.mark.asyncio
    async def test_create_rolls_back_when_collection_fails(
        self,
        service: KnowledgeService,
        storage: SQLiteStorageProvider,
        vector_store: InMemoryVectorStore,
    ) -> None:
        vector_store.create_collection = AsyncMock(side_effect=RAGError("qdrant down"))

        with pytest.raises(RAGError):
            await service.create_knowledge_base("Papers", "text-embedding-3-small")

        assert await storage.list_knowledge_bases() == []

    @pytest.mark.asyncio
    async def test_delete_removes_collection_and_record(
        self,
        service: KnowledgeService,
        storage: SQLiteStorageProvider,
        vector_store: InMemoryVectorStore,
    ) -> None:
        kb = await service.create_knowledge_base("Notes", "text-embedding-3-small")

        await service.delete_knowledge_base(kb.id)

        assert kb.collection_name not in vector_store.collections
        assert await storage.get_knowledge_base(kb.id) is None

    @pytest.mark.parametrize("error", [RAGError("boom"), ProviderUnavailableError("offline")])
    @pytest.mark.asyncio
    async def test_delete_survives_collection_failure(
        self,
        error: Exception,
        service: KnowledgeService,
        storage: SQLiteStorageProvider,
        vector_store: InMemoryVectorStore,
    ) -> None:
        kb = await service.create_knowledge_base("Notes", "text-embedding-3-small")
        vector_store.delete_collection = AsyncMock(side_effect=error)

        await service.delete_knowledge_base(kb.id)

        assert await storage.get_knowledge_base(kb.id) is None

    @pytest.mark.asyncio
    async def test_delete_unknown(self, service: KnowledgeService) -> None:
        with pytest.raises(RecordNotFoundError):
            await service.delete_knowledge_base("missing")


class TestFiles:
    @pytest.mark.asyncio
    async def test_register_file(
        self, service: KnowledgeService, storage: SQLiteStorageProvider, text_file: Path
    ) -> None:
        managed = await service.register_file(text_file)

        assert managed.name == "notes.txt"
        assert managed.path == str(text_file.resolve())
        assert managed.size == text_file.stat().st_size
        assert managed.mime_type == "text/plain"
        assert managed.status is IngestionStatus.PENDING
        assert await storage.get_file(managed.id) == managed

    @pytest.mark.asyncio
    async def test_register_pdf_mime_type(self, service: KnowledgeService, tmp_path: Path) -> None:
        pdf = tmp_path / "paper.pdf"
        pdf.write_bytes(b"%PDF-1.4")
        assert (await service.register_file(pdf)).is_pdf

    @pytest.mark.asyncio
    async def test_register_missing_file(self, service: KnowledgeService, tmp_path: Path) -> None:
        with pytest.raises(IngestionError, match="File not found"):
            await service.register_file(tmp_path / "absent.txt")

    @pytest.mark.asyncio
    async def test_add_file_links_and_ingests(
        self,
        service: KnowledgeService,
        storage: SQLiteStorageProvider,
        ingestion: MagicMock,
        knowledge_base: KnowledgeBase,
        text_file: Path,
    ) -> None:
        managed = await service.register_file(text_file)

        result = await service.add_file_to_knowledge_base("kb-1", managed.id)

        assert result.chunk_count == 3
        ingestion.run.assert_awaited_once_with(managed.id, "kb-1")
        linked = await storage.list_files_for_knowledge_base("kb-1")
        assert [f.id for f in linked] == [managed.id]

    @pytest.mark.asyncio
    async def test_add_file_to_unknown_knowledge_base(
        self, service: KnowledgeService, ingestion: MagicMock
    ) -> None:
        with pytest.raises(RecordNotFoundError):
            await service.add_file_to_knowledge_base("missing", "file-1")
        ingestion.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remove_file_deletes_points_and_link(
        self,
        service: KnowledgeService,
        storage: SQLiteStorageProvider,
        vector_store: InMemoryVectorStore,
        managed_file: ManagedFile,
    ) -> None:
        vector_store.delete_points_by_file = AsyncMock()
        await vector_store.create_collection("knowledge_base_kb-1", 4)

        await service.remove_file_from_knowledge_base("kb-1", managed_file.id)

        vector_store.delete_points_by_file.assert_awaited_once_with(
            "knowledge_base_kb-1", managed_file.id
        )
        assert await storage.list_files_for_knowledge_base("kb-1") == []

    @pytest.mark.asyncio
    async def test_remove_file_without_collection(
        self,
        service: KnowledgeService,
        storage: SQLiteStorageProvider,
        vector_store: InMemoryVectorStore,
        managed_file: ManagedFile,
    ) -> None:
        vector_store.delete_points_by_file = AsyncMock()

        await service.remove_file_from_knowledge_base("kb-1", managed_file.id)

        vector_store.delete_points_by_file.assert_not_awaited()
        assert await storage.list_files_for_knowledge_base("kb-1") == []
