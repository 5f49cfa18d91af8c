"""RAG data models: chunks, vector-index points and retrieval hits.

Defines Pydantic v2 models for the units that flow through ingestion and
retrieval.  All models are frozen.

    1. CHUNKING: a document's text is split into overlapping ``Chunk``s.
    2. EMBEDDING: every chunk text becomes one vector (list of floats).
    3. INDEXING: chunk + vector + provenance form an ``IndexedPoint`` stored
       in the knowledge base's Qdrant collection.
    4. RETRIEVAL: a query vector is matched against one or more collections
       and comes back as ``RetrievedChunk``s tagged with their collection.

Payload keys on the wire are snake_case (``content``, ``file_id``,
``file_name``, ``chunk_index``).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Chunk -- produced by src/services/ingestion/chunker.py
# ---------------------------------------------------------------------------
class Chunk(BaseModel):
    """A bounded slice of document text with its position in the document."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Chunk text, including any overlap prefix.")
    index: int = Field(ge=0, description="Zero-based position within the document.")


class PointPayload(BaseModel):
    """Provenance stored alongside each vector."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="The chunk text.")
    file_id: str = Field(description="Id of the file the chunk came from.")
    file_name: str = Field(description="Display name of the source file.")
    chunk_index: int = Field(ge=0, description="Chunk position within the file.")


class IndexedPoint(BaseModel):
    """One record in a vector-index collection."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Random UUID for this point.")
    vector: list[float] = Field(description="Embedding of the chunk text.")
    payload: PointPayload

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON body fragment for a Qdrant points upsert."""
        return {"id": self.id, "vector": self.vector, "payload": self.payload.model_dump()}


class RetrievedChunk(BaseModel):
    """A search hit from one collection."""

    model_config = ConfigDict(frozen=True)

    payload: dict[str, Any] = Field(default_factory=dict)
    score: float = Field(description="Similarity score; higher is more similar.")
    collection: str = Field(description="Collection the hit was found in.")

    @property
    def content(self) -> str:
        return str(self.payload.get("content", ""))
