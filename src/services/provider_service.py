"""Provider selection layer: connection tests, model listings and configs.

Connection results and model lists are cached per provider for the
ConnectionCache TTL.  A provider that cannot be reached lists no models
(and that empty list is cached too, so a down provider is not re-probed
on every settings refresh).
"""

from __future__ import annotations

import structlog

from src.models.llm import ModelInfo, ProviderConfig
from src.providers.cache.connection_cache import ConnectionCache
from src.providers.llm.factory import LLMClientFactory
from src.providers.llm.registry import PROVIDER_SPECS
from src.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


class ProviderService:
    """Answers "is this provider usable, and what models does it offer?"."""

    def __init__(self, client_factory: LLMClientFactory, cache: ConnectionCache) -> None:
        self._factory = client_factory
        self._cache = cache

    def list_providers(self) -> list[ProviderConfig]:
        """Resolved configs for every known provider, API keys included."""
        return [self._factory.get_provider_config(pid) for pid in PROVIDER_SPECS]

    def get_provider_config(self, provider_id: str) -> ProviderConfig:
        return self._factory.get_provider_config(provider_id)

    async def test_connection(self, provider_id: str) -> bool:
        """Probe *provider_id* (cached).  Never raises for network failures."""
        cached = self._cache.get_connection(provider_id)
        if cached is not None:
            return cached

        client = self._factory.get_client(provider_id)
        if not client.is_available():
            connected = False
        else:
            connected = await client.validate_credentials()

        self._cache.set_connection(provider_id, connected)
        logger.info("provider_connection_tested", provider=provider_id, connected=connected)
        return connected

    async def list_available_models(self, provider_id: str) -> list[ModelInfo]:
        """Models offered by *provider_id* (cached); empty when not connected."""
        cached = self._cache.get_models(provider_id)
        if cached is not None:
            return cached

        if not await self.test_connection(provider_id):
            models: list[ModelInfo] = []
        else:
            try:
                models = await self._factory.get_client(provider_id).list_models()
            except LLMError as exc:
                logger.warning("model_listing_failed", provider=provider_id, error=str(exc))
                models = []

        self._cache.set_models(provider_id, models)
        return models

    def refresh(self, provider_id: str | None = None) -> None:
        """Forget cached probes and clients, e.g. after an API key changes."""
        if provider_id is None:
            self._cache.clear()
        else:
            self._cache.invalidate(provider_id)
        self._factory.reset(provider_id)
