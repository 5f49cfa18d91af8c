"""ragdesk composition root.

Wires settings, providers, services and pipelines together.  The CLIs
(:mod:`src.cli.ingest`, :mod:`src.cli.chat`) and the integration tests
build everything through :func:`build_services` so there is exactly one
place where concrete classes are chosen.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from src.config.loader import load_settings
from src.config.secrets import SettingsSecretProvider
from src.config.settings import Settings
from src.interfaces.web_search_provider import IWebSearchProvider
from src.pipeline.event_bus import EventBus
from src.pipeline.ingestion_pipeline import IngestionPipeline
from src.pipeline.retrieval_pipeline import RetrievalPipeline
from src.providers.cache.connection_cache import ConnectionCache
from src.providers.llm.factory import LLMClientFactory
from src.providers.search.api_search_provider import SEARCH_ENDPOINTS, ApiSearchProvider
from src.providers.search.duckduckgo_provider import DuckDuckGoSearchProvider
from src.providers.storage.sqlite_storage_provider import SQLiteStorageProvider
from src.providers.vector_store.qdrant_provider import QdrantVectorStore
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.embedding_batcher import EmbeddingBatcher
from src.services.ingestion.text_extractor import TextExtractor
from src.services.knowledge_service import KnowledgeService
from src.services.provider_service import ProviderService
from src.services.web_search_service import WebSearchService
from src.utils.logging import configure_logging, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Web search provider selection
# ---------------------------------------------------------------------------


def _build_search_providers(
    app_settings: Settings, http_client: httpx.AsyncClient
) -> dict[str, IWebSearchProvider]:
    """DuckDuckGo always; keyed APIs only when their key is configured."""
    providers: dict[str, IWebSearchProvider] = {"duckduckgo": DuckDuckGoSearchProvider()}
    retry = {
        "max_retries": app_settings.vector_max_retries,
        "base_delay": app_settings.vector_retry_base_delay,
    }
    if app_settings.brave_api_key:
        providers["brave"] = ApiSearchProvider(
            SEARCH_ENDPOINTS["brave"], http_client, app_settings.brave_api_key, **retry
        )
    if app_settings.google_api_key and app_settings.google_cse_id:
        providers["google"] = ApiSearchProvider(
            SEARCH_ENDPOINTS["google"],
            http_client,
            app_settings.google_api_key,
            extra_params={"cx": app_settings.google_cse_id},
            **retry,
        )
    if app_settings.serp_api_key:
        providers["serp"] = ApiSearchProvider(
            SEARCH_ENDPOINTS["serp"], http_client, app_settings.serp_api_key, **retry
        )
    return providers


# ---------------------------------------------------------------------------
# Full assembly
# ---------------------------------------------------------------------------


def build_services(
    app_settings: Settings, http_client: httpx.AsyncClient | None = None
) -> dict[str, Any]:
    """Construct every provider, service and pipeline.

    Returns a flat dict of named components.  Call
    ``await services["storage"].initialize()`` before use and
    :func:`close_services` when done.
    """
    http = http_client or httpx.AsyncClient(timeout=app_settings.qdrant_timeout)

    # -- Collaborators --
    secrets = SettingsSecretProvider(app_settings)
    storage = SQLiteStorageProvider(app_settings.database_path)
    events = EventBus()
    cache = ConnectionCache(ttl=app_settings.connection_cache_ttl)

    # -- LLM --
    client_factory = LLMClientFactory(secrets=secrets, http_client=http)
    provider_service = ProviderService(client_factory=client_factory, cache=cache)

    # -- Vector index --
    vector_store = QdrantVectorStore(
        http_client=http,
        base_url=app_settings.qdrant_url,
        api_key=app_settings.qdrant_api_key,
        max_retries=app_settings.vector_max_retries,
        base_delay=app_settings.vector_retry_base_delay,
        upsert_batch_size=app_settings.upsert_batch_size,
        upsert_batch_delay=app_settings.upsert_batch_delay,
        timeout=app_settings.qdrant_timeout,
    )

    # -- Ingestion --
    embedder = EmbeddingBatcher(
        client_factory=client_factory,
        batch_size=app_settings.embedding_batch_size,
        batch_delay=app_settings.embedding_batch_delay,
    )
    ingestion = IngestionPipeline(
        storage=storage,
        vector_store=vector_store,
        embedder=embedder,
        chunker=TextChunker(app_settings.chunk_size, app_settings.chunk_overlap),
        extractor=TextExtractor(),
        events=events,
    )
    knowledge_service = KnowledgeService(
        storage=storage, vector_store=vector_store, ingestion=ingestion
    )

    # -- Retrieval --
    web_search = WebSearchService(
        providers=_build_search_providers(app_settings, http),
        default_provider=app_settings.web_search_provider,
    )
    retrieval = RetrievalPipeline(
        storage=storage,
        vector_store=vector_store,
        embedder=embedder,
        client_factory=client_factory,
        events=events,
        settings=app_settings,
        web_search=web_search,
    )

    _logger.info(
        "services_built",
        qdrant_url=app_settings.qdrant_url,
        database=app_settings.database_path,
        llm_providers=app_settings.get_configured_llm_providers(),
        web_search=web_search.provider_ids,
    )

    return {
        "settings": app_settings,
        "http_client": http,
        "storage": storage,
        "events": events,
        "client_factory": client_factory,
        "provider_service": provider_service,
        "vector_store": vector_store,
        "embedder": embedder,
        "ingestion": ingestion,
        "knowledge_service": knowledge_service,
        "web_search": web_search,
        "retrieval": retrieval,
    }


async def close_services(services: dict[str, Any]) -> None:
    """Release shared network resources."""
    await services["http_client"].aclose()


def bootstrap(config_path: str = "config/config.yaml") -> Settings:
    """Load settings and configure logging for a one-shot process."""
    app_settings = load_settings(config_path)
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )
    return app_settings
