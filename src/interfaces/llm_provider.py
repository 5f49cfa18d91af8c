"""Abstract base class for LLM service providers.

Defines the one contract every model backend implements: embeddings,
streamed chat completion, model listing and a credential probe.  Concrete
adapters (OpenAI-compatible, Anthropic, Ollama) are configured by data in
:mod:`src.providers.llm.registry`, so call-sites never branch on provider.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from src.models.llm import ChatChunk, ModelInfo


# Concrete implementations: OpenAICompatibleLLMProvider, AnthropicLLMProvider,
# OllamaLLMProvider.  Located in: src/providers/llm/
class ILLMProvider(ABC):
    """Contract for LLM services used by the ingestion and retrieval pipelines."""

    @abstractmethod
    async def embed(self, texts: list[str], model: str) -> list[list[float]]:
        """Embed *texts* with *model*, one vector per input, in input order.

        Raises
        ------
        src.utils.errors.UnsupportedCapabilityError
            If the provider has no embeddings endpoint.
        src.utils.errors.LLMError
            If the API call fails.
        """

    @abstractmethod
    def stream_chat(
        self,
        prompt: str,
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[ChatChunk]:
        """Stream a completion of *prompt* as a sequence of chunks.

        Implementations are async generators; the stream ends when the
        provider signals completion.

        Raises
        ------
        src.utils.errors.LLMError
            If the request fails before or during streaming.
        """

    @abstractmethod
    async def list_models(self) -> list[ModelInfo]:
        """Return the models this provider advertises.

        Raises
        ------
        src.utils.errors.LLMError
            If the listing call fails.
        """

    @abstractmethod
    async def validate_credentials(self) -> bool:
        """Perform a lightweight API call to confirm the provider is usable.

        Returns ``False`` instead of raising when the provider rejects the
        credentials or cannot be reached.
        """

    @abstractmethod
    def supports_embeddings(self) -> bool:
        """Return ``True`` if :meth:`embed` is backed by a real endpoint."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the provider id, e.g. ``"openai"`` or ``"ollama"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (no network call)."""
