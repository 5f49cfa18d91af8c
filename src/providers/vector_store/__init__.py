"""Vector store provider implementations.

Qdrant is the sole vector index.  To use another database, implement
IVectorStoreProvider and wire it in ``src/main.py``.
"""

from src.providers.vector_store.qdrant_provider import QdrantVectorStore

__all__ = ["QdrantVectorStore"]
