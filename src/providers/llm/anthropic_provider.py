"""Anthropic LLM provider adapter.

Wraps the ``anthropic`` async client to implement :class:`ILLMProvider`.

Key differences from the OpenAI-compatible adapter:
    - Uses the Messages API; streaming goes through ``messages.stream``
      and yields text deltas from ``stream.text_stream``
    - ``max_tokens`` is mandatory, so a default is always sent
    - There is no embeddings endpoint: :meth:`embed` raises
      :class:`UnsupportedCapabilityError`
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import anthropic
import structlog

from src.interfaces.llm_provider import ILLMProvider
from src.models.llm import ChatChunk, ModelInfo
from src.providers.llm.registry import PROVIDER_SPECS, ProviderSpec
from src.utils.errors import LLMError, UnsupportedCapabilityError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MAX_TOKENS = 2048


class AnthropicLLMProvider(ILLMProvider):
    """LLM provider backed by the Anthropic Claude API."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        spec: ProviderSpec | None = None,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self._spec = spec or PROVIDER_SPECS["anthropic"]
        self._api_key = api_key or ""
        client_kwargs: dict[str, Any] = {"api_key": self._api_key}
        if base_url:
            client_kwargs["base_url"] = base_url
        self._client = client or anthropic.AsyncAnthropic(**client_kwargs)

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str], model: str) -> list[list[float]]:
        raise UnsupportedCapabilityError(
            message="Anthropic does not provide embeddings",
            provider_name=self.get_provider_name(),
        )

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

        try:
            async with self._client.messages.stream(
                model=model,
                max_tokens=max_tokens or _DEFAULT_MAX_TOKENS,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            ) as stream:
                async for text in stream.text_stream:
                    if text:
                        yield ChatChunk(content=text)
        except anthropic.APIError as exc:
            raise LLMError(
                message=f"Chat stream failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug("chat_stream_complete", provider=self.get_provider_name(), model=model)

    async def list_models(self) -> list[ModelInfo]:
        try:
            page = await self._client.models.list()
        except anthropic.APIError as exc:
            raise LLMError(
                message=f"Model listing failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return [
            ModelInfo(
                id=item.id,
                name=getattr(item, "display_name", None) or item.id,
                provider=self.get_provider_name(),
                type="chat",
            )
            for item in page.data
        ]

    async def validate_credentials(self) -> bool:
        if not self.is_available():
            return False
        try:
            await self._client.models.list()
        except anthropic.APIError as exc:
            logger.info(
                "provider_credentials_rejected",
                provider=self.get_provider_name(),
                error=str(exc),
            )
            return False
        return True

    def supports_embeddings(self) -> bool:
        return False

    def get_provider_name(self) -> str:
        return self._spec.provider_id

    def is_available(self) -> bool:
        return bool(self._api_key)
