"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
Most hosted providers (Groq, Together, Mistral, xAI, DeepSeek, OpenRouter,
Google's and Cohere's compatibility endpoints) and LM Studio expose the
OpenAI REST shape, so one adapter pointed at a different ``base_url``
serves all of them.  Per-provider differences (embeddings or not, which
models to list) come from the :class:`ProviderSpec` it is built with.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import openai
import structlog

from src.interfaces.llm_provider import ILLMProvider
from src.models.llm import ChatChunk, ModelInfo
from src.providers.llm.registry import ProviderSpec
from src.utils.errors import LLMError, UnsupportedCapabilityError

logger = structlog.get_logger(logger_name=__name__)

# Local servers accept any key but the SDK refuses an empty one.
_PLACEHOLDER_KEY = "not-needed"


class OpenAICompatibleLLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible API.

    Parameters
    ----------
    spec:
        Static description of the provider (id, default URL, capabilities).
    api_key:
        Provider API key; may be empty for local servers.
    base_url:
        Overrides ``spec.default_base_url`` when given.
    client:
        Pre-built ``openai.AsyncOpenAI`` (tests inject a mock here).
    """

    def __init__(
        self,
        spec: ProviderSpec,
        api_key: str | None = None,
        base_url: str | None = None,
        client: openai.AsyncOpenAI | None = None,
    ) -> None:
        self._spec = spec
        self._api_key = api_key or ""
        self._base_url = base_url or spec.default_base_url
        self._client = client or openai.AsyncOpenAI(
            api_key=self._api_key or _PLACEHOLDER_KEY,
            base_url=self._base_url,
            timeout=openai.Timeout(60.0, connect=5.0),
        )

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str], model: str) -> list[list[float]]:
        if not self._spec.supports_embeddings:
            raise UnsupportedCapabilityError(
                message=f"{self._spec.display_name} does not provide embeddings",
                provider_name=self.get_provider_name(),
            )
        try:
            response = await self._client.embeddings.create(input=texts, model=model)
        except openai.APIError as exc:
            raise LLMError(
                message=f"Embedding request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        # The API may return items out of order; ``index`` is authoritative.
        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]

    async def stream_chat(
        self,
        prompt: str,
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[ChatChunk]:
        kwargs: dict[str, Any] = {}
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        try:
            stream = await self._client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                stream=True,
                **kwargs,
            )
            async for event in stream:
                if not event.choices:
                    continue
                choice = event.choices[0]
                content = choice.delta.content if choice.delta else None
                if content or choice.finish_reason:
                    yield ChatChunk(content=content or "", finish_reason=choice.finish_reason)
        except openai.APIError as exc:
            raise LLMError(
                message=f"Chat stream failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug("chat_stream_complete", provider=self.get_provider_name(), model=model)

    async def list_models(self) -> list[ModelInfo]:
        try:
            page = await self._client.models.list()
        except openai.APIError as exc:
            raise LLMError(
                message=f"Model listing failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        models: list[ModelInfo] = []
        for item in page.data:
            if self._spec.model_filter and not any(
                token in item.id for token in self._spec.model_filter
            ):
                continue
            models.append(
                ModelInfo(
                    id=item.id,
                    name=item.id,
                    provider=self.get_provider_name(),
                    type="embedding" if "embed" in item.id else "chat",
                )
            )
        return models

    async def validate_credentials(self) -> bool:
        if not self.is_available():
            return False
        try:
            await self._client.models.list()
        except openai.APIError as exc:
            logger.info(
                "provider_credentials_rejected",
                provider=self.get_provider_name(),
                error=str(exc),
            )
            return False
        return True

    def supports_embeddings(self) -> bool:
        return self._spec.supports_embeddings

    def get_provider_name(self) -> str:
        return self._spec.provider_id

    def is_available(self) -> bool:
        if self._spec.requires_api_key:
            return bool(self._api_key)
        return bool(self._base_url)
