"""Building blocks of the ingestion pipeline: **extract -> chunk -> embed**.

1. **Extract** (text_extractor.py / TextExtractor) -- PDF or plain-text
   file to a single string.
2. **Chunk** (chunker.py / TextChunker) -- recursive separator split into
   bounded, overlapping chunks.
3. **Embed** (embedding_batcher.py / EmbeddingBatcher) -- batched, ordered
   embedding through the provider that serves the knowledge base's model.

Indexing into the vector store and status/progress handling live in
:mod:`src.pipeline.ingestion_pipeline`.
"""

from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.embedding_batcher import EmbeddingBatcher
from src.services.ingestion.text_extractor import TextExtractor

__all__ = [
    "EmbeddingBatcher",
    "TextChunker",
    "TextExtractor",
]
