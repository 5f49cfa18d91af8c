"""Builds and caches LLM clients from provider specs and secrets.

Given a provider id, the factory looks up its :class:`ProviderSpec`, reads
``{provider}_api_key`` and ``{provider}_base_url`` from the secret
provider, and instantiates the matching adapter.  Given a model id, it
first routes the model to a provider with :func:`route_model`.

Clients are cached per provider id for the factory's lifetime;
:meth:`LLMClientFactory.reset` drops them after secrets change.
"""

from __future__ import annotations

import httpx
import structlog

from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.secret_provider import ISecretProvider
from src.models.llm import ProviderConfig
from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.ollama_provider import OllamaLLMProvider
from src.providers.llm.openai_provider import OpenAICompatibleLLMProvider
from src.providers.llm.registry import get_provider_spec, route_model

logger = structlog.get_logger(logger_name=__name__)


class LLMClientFactory:
    """Resolves :class:`ILLMProvider` instances by provider or model id."""

    def __init__(self, secrets: ISecretProvider, http_client: httpx.AsyncClient) -> None:
        self._secrets = secrets
        self._http = http_client
        self._clients: dict[str, ILLMProvider] = {}

    def get_provider_config(self, provider_id: str) -> ProviderConfig:
        """Resolve the connection settings for *provider_id*.

        Raises
        ------
        ConfigurationError
            If the provider id is unknown.
        """
        spec = get_provider_spec(provider_id)
        api_key = self._secrets.get_secret(f"{provider_id}_api_key")
        base_url = self._secrets.get_secret(f"{provider_id}_base_url") or spec.default_base_url
        enabled = bool(base_url) if not spec.requires_api_key else bool(api_key)
        return ProviderConfig(
            id=spec.provider_id,
            name=spec.display_name,
            type="local" if spec.local else "api",
            api_key=api_key,
            base_url=base_url,
            enabled=enabled,
        )

    def get_client(self, provider_id: str) -> ILLMProvider:
        cached = self._clients.get(provider_id)
        if cached is not None:
            return cached

        spec = get_provider_spec(provider_id)
        config = self.get_provider_config(provider_id)
        client: ILLMProvider
        if spec.adapter == "anthropic":
            client = AnthropicLLMProvider(
                api_key=config.api_key, base_url=config.base_url, spec=spec
            )
        elif spec.adapter == "ollama":
            client = OllamaLLMProvider(self._http, base_url=config.base_url, spec=spec)
        else:
            client = OpenAICompatibleLLMProvider(
                spec, api_key=config.api_key, base_url=config.base_url
            )

        logger.debug("llm_client_created", provider=provider_id, adapter=spec.adapter)
        self._clients[provider_id] = client
        return client

    def get_client_for_model(self, model: str) -> ILLMProvider:
        """Route *model* to its provider and return that provider's client.

        Raises
        ------
        UnsupportedModelError
            If no routing rule matches *model*.
        """
        return self.get_client(route_model(model))

    def reset(self, provider_id: str | None = None) -> None:
        if provider_id is None:
            self._clients.clear()
        else:
            self._clients.pop(provider_id, None)
