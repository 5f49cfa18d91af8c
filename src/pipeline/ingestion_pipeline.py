"""File ingestion: file → text → chunks → vectors → vector index.

Runs once per file added to a knowledge base.  The file's stored status
moves through

    PENDING/INDEXED/ERROR → PROCESSING → INDEXING → INDEXED
                                  ↘            ↘
                                    ERROR ←─────

and a ``file-processing-progress`` event is emitted at each step:

    PROCESSING   0  Processing file...
    PROCESSING  10  Parsing PDF content... / Reading text content...
    PROCESSING  30  Splitting text into chunks...
    INDEXING    50  Generating embeddings for N chunks...
    INDEXING 50-80  Embedding chunks (x/N)...           (after each batch)
    INDEXING    80  Preparing data for vector database...
    INDEXING    90  Indexing N chunks in vector database...
    COMPLETED  100  File processing completed successfully!
    ERROR        0  Error: <message>

One top-level handler turns any failure into ERROR status plus an ERROR
event, then re-raises.  At most one run per file id is allowed at a time.
"""

from __future__ import annotations

import math
import time
import uuid

import structlog

from src.interfaces.event_sink import FILE_PROGRESS_EVENT, IEventSink
from src.interfaces.storage_provider import IStorageProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.knowledge import IngestionStatus, KnowledgeBase, ManagedFile
from src.models.pipeline import FileProgress, IngestionResult, ProgressStatus
from src.models.rag import IndexedPoint, PointPayload
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.embedding_batcher import EmbeddingBatcher
from src.services.ingestion.text_extractor import TextExtractor
from src.utils.cancellation import CancellationToken
from src.utils.concurrency import KeyedGuard
from src.utils.errors import (
    IngestionError,
    PipelineError,
    RAGError,
    RecordNotFoundError,
)

logger = structlog.get_logger(logger_name=__name__)

_EMBED_START = 50
_EMBED_WEIGHT = 30


class IngestionPipeline:
    """Ingests one file into one knowledge base's collection.

    Parameters
    ----------
    storage:
        Relational store for file and knowledge-base records.
    vector_store:
        Vector index holding the knowledge base's collection.
    embedder:
        Batched embedding of chunk texts.
    chunker:
        Text splitter.
    extractor:
        File-to-text reader.
    events:
        Sink for progress events.
    """

    def __init__(
        self,
        storage: IStorageProvider,
        vector_store: IVectorStoreProvider,
        embedder: EmbeddingBatcher,
        chunker: TextChunker,
        extractor: TextExtractor,
        events: IEventSink,
    ) -> None:
        self._storage = storage
        self._vector_store = vector_store
        self._embedder = embedder
        self._chunker = chunker
        self._extractor = extractor
        self._events = events
        self._guard = KeyedGuard("ingestion")
        self._tokens: dict[str, CancellationToken] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(
        self,
        file_id: str,
        knowledge_base_id: str,
        cancel_token: CancellationToken | None = None,
    ) -> IngestionResult:
        """Ingest *file_id* into *knowledge_base_id*.

        Raises
        ------
        ResourceBusyError
            If the file is already being ingested.  The running job is untouched.
        RagDeskError
            Any failure after the job started; the file ends in ERROR.
        """
        token = cancel_token or CancellationToken()
        async with self._guard.hold(file_id):
            self._tokens[file_id] = token
            try:
                return await self._run(file_id, knowledge_base_id, token)
            except Exception as exc:
                await self._fail(file_id, exc)
                raise
            finally:
                self._tokens.pop(file_id, None)

    def cancel(self, file_id: str) -> bool:
        """Request cancellation of the running job for *file_id*.

        Returns ``False`` when no job is running for it.
        """
        token = self._tokens.get(file_id)
        if token is None:
            return False
        token.cancel(f"Ingestion of {file_id} cancelled")
        return True

    def is_running(self, file_id: str) -> bool:
        return self._guard.is_busy(file_id)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _run(
        self, file_id: str, knowledge_base_id: str, token: CancellationToken
    ) -> IngestionResult:
        started = time.monotonic()

        file = await self._storage.get_file(file_id)
        if file is None:
            raise RecordNotFoundError(f"File {file_id} not found")

        # A new run may start from any stored status; the guard rules out a
        # live run, so PROCESSING/INDEXING here are leftovers of a crash.
        status = IngestionStatus.PROCESSING
        await self._storage.update_file_status(file_id, status)
        await self._progress(file_id, ProgressStatus.PROCESSING, 0, "Processing file...")

        knowledge_base = await self._load_knowledge_base(knowledge_base_id)
        token.raise_if_cancelled()

        # -- Extract ---------------------------------------------------
        await self._progress(
            file_id,
            ProgressStatus.PROCESSING,
            10,
            "Parsing PDF content..." if file.is_pdf else "Reading text content...",
        )
        text = await self._extractor.extract(file)
        token.raise_if_cancelled()

        # -- Chunk -----------------------------------------------------
        await self._progress(
            file_id, ProgressStatus.PROCESSING, 30, "Splitting text into chunks..."
        )
        chunks = [c for c in self._chunker.split(text) if c.strip()]
        if not chunks:
            raise IngestionError("No text content found in file")

        # -- Embed -----------------------------------------------------
        status = await self._transition(file_id, status, IngestionStatus.INDEXING)
        total = len(chunks)
        await self._progress(
            file_id,
            ProgressStatus.INDEXING,
            _EMBED_START,
            f"Generating embeddings for {total} chunks...",
        )

        async def on_batch(done: int, batch_total: int) -> None:
            progress = _EMBED_START + math.floor(done / batch_total * _EMBED_WEIGHT)
            await self._progress(
                file_id,
                ProgressStatus.INDEXING,
                progress,
                f"Embedding chunks ({done}/{batch_total})...",
            )

        vectors = await self._embedder.embed(
            chunks, knowledge_base.embedding_model, on_progress=on_batch, cancel_token=token
        )
        self._check_dimensions(vectors, knowledge_base)

        # -- Build points ----------------------------------------------
        await self._progress(
            file_id, ProgressStatus.INDEXING, 80, "Preparing data for vector database..."
        )
        points = _build_points(file, chunks, vectors)
        token.raise_if_cancelled()

        # -- Index -----------------------------------------------------
        collection = knowledge_base.collection_name
        await self._progress(
            file_id,
            ProgressStatus.INDEXING,
            90,
            f"Indexing {total} chunks in vector database...",
        )
        try:
            created = await self._vector_store.ensure_collection(
                collection, knowledge_base.vector_size
            )
            if not created:
                # Drop points from an earlier run so re-ingestion never duplicates.
                await self._vector_store.delete_points_by_file(collection, file_id)
            token.raise_if_cancelled()
            await self._vector_store.upsert(collection, points)
        except RAGError as exc:
            raise IngestionError(
                f"Failed to index chunks in vector database: {exc}"
            ) from exc

        await self._transition(file_id, status, IngestionStatus.INDEXED)
        await self._progress(
            file_id, ProgressStatus.COMPLETED, 100, "File processing completed successfully!"
        )

        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "file_ingested",
            file_id=file_id,
            knowledge_base_id=knowledge_base_id,
            chunks=total,
            elapsed_ms=elapsed_ms,
        )
        return IngestionResult(
            file_id=file_id,
            knowledge_base_id=knowledge_base_id,
            collection=collection,
            chunk_count=total,
            elapsed_ms=elapsed_ms,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _load_knowledge_base(self, knowledge_base_id: str) -> KnowledgeBase:
        knowledge_base = await self._storage.get_knowledge_base(knowledge_base_id)
        if knowledge_base is None:
            raise IngestionError(f"Knowledge base {knowledge_base_id} not found")
        if not knowledge_base.embedding_model or not knowledge_base.vector_size:
            raise IngestionError(
                f"Knowledge base {knowledge_base_id} has no embedding model or vector size"
            )
        return knowledge_base

    @staticmethod
    def _check_dimensions(vectors: list[list[float]], knowledge_base: KnowledgeBase) -> None:
        for vector in vectors:
            if len(vector) != knowledge_base.vector_size:
                raise IngestionError(
                    f"Embedding dimension {len(vector)} does not match knowledge base "
                    f"vector size {knowledge_base.vector_size}"
                )

    async def _transition(
        self, file_id: str, current: IngestionStatus, target: IngestionStatus
    ) -> IngestionStatus:
        if not current.can_transition_to(target):
            raise PipelineError(
                f"Illegal status transition {current.value} -> {target.value} for {file_id}"
            )
        await self._storage.update_file_status(file_id, target)
        return target

    async def _progress(
        self, file_id: str, status: ProgressStatus, progress: int, message: str
    ) -> None:
        event = FileProgress(file_id=file_id, status=status, progress=progress, message=message)
        await self._events.emit(FILE_PROGRESS_EVENT, event.to_event_payload())

    async def _fail(self, file_id: str, exc: Exception) -> None:
        message = exc.message if hasattr(exc, "message") else str(exc)
        logger.error("file_ingestion_failed", file_id=file_id, error=str(exc))
        if not isinstance(exc, RecordNotFoundError):
            try:
                await self._storage.update_file_status(file_id, IngestionStatus.ERROR)
            except Exception as status_exc:
                # The original failure is re-raised by the caller.
                logger.error(
                    "file_status_update_failed", file_id=file_id, error=str(status_exc)
                )
        await self._progress(file_id, ProgressStatus.ERROR, 0, f"Error: {message}")


def _build_points(
    file: ManagedFile, chunks: list[str], vectors: list[list[float]]
) -> list[IndexedPoint]:
    return [
        IndexedPoint(
            id=str(uuid.uuid4()),
            vector=vector,
            payload=PointPayload(
                content=chunk,
                file_id=file.id,
                file_name=file.name,
                chunk_index=index,
            ),
        )
        for index, (chunk, vector) in enumerate(zip(chunks, vectors))
    ]
