"""Public interface definitions for all external collaborators.

Every external service ragdesk touches is reached through one of these
abstract base classes.  Concrete adapters live in ``src/providers/`` and
are wired together in :mod:`src.main`; tests inject mocks built with
``MagicMock(spec=...)``.

CONCRETE PROVIDER MAP:
    Interface             →  Concrete implementations
    ──────────────────────────────────────────────────────────────
    ILLMProvider          →  OpenAICompatibleLLMProvider,
                             AnthropicLLMProvider, OllamaLLMProvider
    IVectorStoreProvider  →  QdrantVectorStore
    IWebSearchProvider    →  DuckDuckGoSearchProvider, ApiSearchProvider
    IStorageProvider      →  SQLiteStorageProvider
    IEventSink            →  EventBus
    ISecretProvider       →  SettingsSecretProvider
"""

from src.interfaces.event_sink import IEventSink
from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.secret_provider import ISecretProvider
from src.interfaces.storage_provider import IStorageProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.interfaces.web_search_provider import IWebSearchProvider, SearchResult

__all__ = [
    "IEventSink",
    "ILLMProvider",
    "ISecretProvider",
    "IStorageProvider",
    "IVectorStoreProvider",
    "IWebSearchProvider",
    "SearchResult",
]
