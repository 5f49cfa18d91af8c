"""Ollama LLM provider adapter for locally hosted models.

Talks to Ollama's native REST API with httpx rather than its
OpenAI-compatible shim, because the native API exposes batch embeddings
(``/api/embed``) and installed models (``/api/tags``) directly:

    POST /api/embed   {"model", "input": [...]}        -> {"embeddings": [[...]]}
    POST /api/chat    {"model", "messages", "stream"}  -> NDJSON lines
    GET  /api/tags                                     -> {"models": [{"name"}]}

No API key is needed; the provider is "available" whenever a base URL is
configured.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx
import structlog

from src.interfaces.llm_provider import ILLMProvider
from src.models.llm import ChatChunk, ModelInfo
from src.providers.llm.registry import PROVIDER_SPECS, ProviderSpec
from src.utils.errors import LLMError, ProviderUnavailableError, UpstreamHTTPError
from src.utils.retry import request_with_retry

logger = structlog.get_logger(logger_name=__name__)


class OllamaLLMProvider(ILLMProvider):
    """LLM provider backed by a local Ollama server.

    Parameters
    ----------
    http_client:
        Shared async HTTP client.
    base_url:
        Ollama server URL, defaults to ``http://localhost:11434``.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str | None = None,
        spec: ProviderSpec | None = None,
    ) -> None:
        self._spec = spec or PROVIDER_SPECS["ollama"]
        self._http = http_client
        self._base_url = (base_url or self._spec.default_base_url or "").rstrip("/")

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str], model: str) -> list[list[float]]:
        data = await self._post_json("/api/embed", {"model": model, "input": texts})
        embeddings = data.get("embeddings")
        if not isinstance(embeddings, list):
            raise LLMError(
                message="Ollama embed response has no 'embeddings' list",
                provider_name=self.get_provider_name(),
            )
        return embeddings

    async def stream_chat(
        self,
        prompt: str,
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[ChatChunk]:
        options: dict[str, Any] = {}
        if temperature is not None:
            options["temperature"] = temperature
        if max_tokens is not None:
            options["num_predict"] = max_tokens
        body: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": True,
        }
        if options:
            body["options"] = options

        try:
            async with self._http.stream(
                "POST", f"{self._base_url}/api/chat", json=body, timeout=None
            ) as response:
                if response.status_code >= 400:
                    detail = (await response.aread()).decode("utf-8", errors="replace")
                    raise LLMError(
                        message=f"Chat request failed with status {response.status_code}: {detail}",
                        provider_name=self.get_provider_name(),
                    )
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    chunk = self._parse_chat_line(line)
                    if chunk is not None:
                        yield chunk
        except httpx.HTTPError as exc:
            raise LLMError(
                message=f"Chat stream failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def list_models(self) -> list[ModelInfo]:
        data = await self._get_json("/api/tags")
        return [
            ModelInfo(
                id=item["name"],
                name=item["name"],
                provider=self.get_provider_name(),
                type="embedding" if "embed" in item["name"] else "chat",
            )
            for item in data.get("models") or []
            if item.get("name")
        ]

    async def validate_credentials(self) -> bool:
        if not self.is_available():
            return False
        try:
            response = await self._http.get(f"{self._base_url}/api/tags", timeout=5.0)
        except httpx.HTTPError as exc:
            logger.info("ollama_unreachable", base_url=self._base_url, error=str(exc))
            return False
        return response.status_code == 200

    def supports_embeddings(self) -> bool:
        return True

    def get_provider_name(self) -> str:
        return self._spec.provider_id

    def is_available(self) -> bool:
        return bool(self._base_url)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _parse_chat_line(self, line: str) -> ChatChunk | None:
        try:
            data = json.loads(line)
        except ValueError as exc:
            raise LLMError(
                message=f"Malformed stream line from Ollama: {line[:200]}",
                provider_name=self.get_provider_name(),
            ) from exc
        if data.get("error"):
            raise LLMError(message=str(data["error"]), provider_name=self.get_provider_name())
        content = (data.get("message") or {}).get("content") or ""
        finish_reason = (data.get("done_reason") or "stop") if data.get("done") else None
        if not content and finish_reason is None:
            return None
        return ChatChunk(content=content, finish_reason=finish_reason)

    async def _post_json(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request_json("POST", path, json=body)

    async def _get_json(self, path: str) -> dict[str, Any]:
        return await self._request_json("GET", path)

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await request_with_retry(
                self._http,
                method,
                f"{self._base_url}{path}",
                provider_name=self.get_provider_name(),
                timeout=120.0,
                **kwargs,
            )
            return response.json()
        except (UpstreamHTTPError, ProviderUnavailableError) as exc:
            raise LLMError(
                message=f"{method} {path} failed: {exc.message}",
                provider_name=self.get_provider_name(),
            ) from exc
        except ValueError as exc:
            raise LLMError(
                message=f"Malformed JSON from {method} {path}",
                provider_name=self.get_provider_name(),
            ) from exc
