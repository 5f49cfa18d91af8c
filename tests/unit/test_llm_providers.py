"""Unit tests for LLM routing, the client factory and the provider adapters."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import openai
import pytest

from src.config.secrets import SettingsSecretProvider
from src.config.settings import Settings
from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.factory import LLMClientFactory
from src.providers.llm.ollama_provider import OllamaLLMProvider
from src.providers.llm.openai_provider import OpenAICompatibleLLMProvider
from src.providers.llm.registry import PROVIDER_SPECS, get_provider_spec, route_model
from src.utils.errors import (
    ConfigurationError,
    LLMError,
    UnsupportedCapabilityError,
    UnsupportedModelError,
)

# ======================================================================
# Shared helpers
# ======================================================================


async def _collect(stream) -> list:
    return [chunk async for chunk in stream]


async def _aiter(items):
    for item in items:
        yield item


def _openai_error() -> openai.APIError:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    return openai.APIError("upstream exploded", request=request, body=None)


def _stream_event(content: str | None, finish_reason: str | None = None) -> MagicMock:
    choice = MagicMock()
    choice.delta = MagicMock(content=content)
    choice.finish_reason = finish_reason
    return MagicMock(choices=[choice])


def _factory(**overrides) -> LLMClientFactory:
    values = {"openai_api_key": "sk-test", "anthropic_api_key": "sk-ant-test"}
    values.update(overrides)
    secrets = SettingsSecretProvider(Settings(_env_file=None, **values))
    return LLMClientFactory(secrets=secrets, http_client=httpx.AsyncClient())


# ======================================================================
# Routing
# ======================================================================


class TestRouteModel:
    @pytest.mark.parametrize(
        ("model", "provider"),
        [
            ("gpt-4", "openai"),
            ("gpt-4o-mini", "openai"),
            ("text-embedding-3-small", "openai"),
            ("text-embedding-3-large", "openai"),
            ("text-embedding-ada-002", "openai"),
            ("claude-3-5-sonnet-latest", "anthropic"),
            ("command-r-plus", "cohere"),
            ("embed-english-v3.0", "cohere"),
            ("mistral-large-latest", "mistral"),
            ("mistral-embed", "mistral"),
            ("llama3.1:8b", "ollama"),
            ("nomic-embed-text-ollama", "ollama"),
            ("groq-llama", "ollama"),
            ("meta-together-model", "together"),
            ("gemini-1.5-pro", "google"),
            ("text-embedding-004", "google"),
            ("embedding-001", "google"),
            ("grok-2", "xai"),
            ("deepseek-chat", "deepseek"),
        ],
    )
    def test_routes(self, model: str, provider: str) -> None:
        assert route_model(model) == provider

    def test_unknown_model_raises(self) -> None:
        with pytest.raises(UnsupportedModelError, match="Unsupported model: mystery-model"):
            route_model("mystery-model")

    def test_unknown_provider_spec_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            get_provider_spec("nope")


# ======================================================================
# Factory
# ======================================================================


class TestLLMClientFactory:
    def test_model_resolves_to_matching_adapter(self) -> None:
        factory = _factory()
        assert isinstance(factory.get_client_for_model("gpt-4"), OpenAICompatibleLLMProvider)
        assert isinstance(factory.get_client_for_model("claude-3-haiku"), AnthropicLLMProvider)
        assert isinstance(factory.get_client_for_model("llama3"), OllamaLLMProvider)

    def test_clients_are_cached_per_provider(self) -> None:
        factory = _factory()
        first = factory.get_client("openai")
        assert factory.get_client_for_model("gpt-4o") is first
        factory.reset("openai")
        assert factory.get_client("openai") is not first

    def test_reset_all(self) -> None:
        factory = _factory()
        first = factory.get_client("anthropic")
        factory.reset()
        assert factory.get_client("anthropic") is not first

    def test_provider_config_for_keyed_provider(self) -> None:
        config = _factory().get_provider_config("openai")
        assert config.type == "api"
        assert config.enabled is True
        assert config.api_key == "sk-test"
        assert config.base_url == "https://api.openai.com/v1"

    def test_provider_without_key_is_disabled(self) -> None:
        config = _factory().get_provider_config("groq")
        assert config.enabled is False
        assert config.api_key is None

    def test_local_provider_uses_configured_base_url(self) -> None:
        config = _factory(ollama_base_url="http://gpu-box:11434").get_provider_config("ollama")
        assert config.type == "local"
        assert config.enabled is True
        assert config.base_url == "http://gpu-box:11434"

    def test_provider_base_url_override(self) -> None:
        factory = _factory(groq_api_key="gsk", provider_base_urls={"groq": "https://proxy/v1"})
        assert factory.get_provider_config("groq").base_url == "https://proxy/v1"

    def test_unknown_provider(self) -> None:
        with pytest.raises(ConfigurationError):
            _factory().get_client("nope")

    def test_unknown_model(self) -> None:
        with pytest.raises(UnsupportedModelError):
            _factory().get_client_for_model("mystery-model")


# ======================================================================
# OpenAI-compatible adapter
# ======================================================================


class TestOpenAICompatibleProvider:
    def _provider(self, client: MagicMock, provider_id: str = "openai", key: str = "sk"):
        return OpenAICompatibleLLMProvider(
            PROVIDER_SPECS[provider_id], api_key=key, client=client
        )

    @pytest.mark.asyncio
    async def test_embed_orders_by_index(self) -> None:
        client = MagicMock()
        client.embeddings.create = AsyncMock(
            return_value=MagicMock(
                data=[
                    MagicMock(index=1, embedding=[0.2, 0.2]),
                    MagicMock(index=0, embedding=[0.1, 0.1]),
                ]
            )
        )
        vectors = await self._provider(client).embed(["a", "b"], "text-embedding-3-small")

        assert vectors == [[0.1, 0.1], [0.2, 0.2]]
        client.embeddings.create.assert_awaited_once_with(
            input=["a", "b"], model="text-embedding-3-small"
        )

    @pytest.mark.asyncio
    async def test_embed_wraps_sdk_errors(self) -> None:
        client = MagicMock()
        client.embeddings.create = AsyncMock(side_effect=_openai_error())
        with pytest.raises(LLMError, match="Embedding request failed"):
            await self._provider(client).embed(["a"], "text-embedding-3-small")

    @pytest.mark.asyncio
    async def test_embed_unsupported_for_chat_only_provider(self) -> None:
        client = MagicMock()
        with pytest.raises(UnsupportedCapabilityError):
            await self._provider(client, "groq").embed(["a"], "llama-3.1-8b")
        client.embeddings.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_stream_chat_yields_deltas(self) -> None:
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            return_value=_aiter(
                [
                    _stream_event("Hel"),
                    _stream_event(None),
                    _stream_event("lo"),
                    _stream_event(None, "stop"),
                ]
            )
        )
        chunks = await _collect(
            self._provider(client).stream_chat("prompt", "gpt-4", temperature=0.2, max_tokens=64)
        )

        assert [c.content for c in chunks] == ["Hel", "lo", ""]
        assert chunks[-1].finish_reason == "stop"
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 64
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]

    @pytest.mark.asyncio
    async def test_stream_chat_wraps_sdk_errors(self) -> None:
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=_openai_error())
        with pytest.raises(LLMError, match="Chat stream failed"):
            await _collect(self._provider(client).stream_chat("p", "gpt-4"))

    @pytest.mark.asyncio
    async def test_list_models_applies_filter(self) -> None:
        client = MagicMock()
        models = [
            MagicMock(id="gpt-4o"),
            MagicMock(id="whisper-1"),
            MagicMock(id="text-embedding-3-small"),
        ]
        client.models.list = AsyncMock(return_value=MagicMock(data=models))

        listed = await self._provider(client).list_models()

        assert [(m.id, m.type) for m in listed] == [
            ("gpt-4o", "chat"),
            ("text-embedding-3-small", "embedding"),
        ]

    @pytest.mark.asyncio
    async def test_validate_credentials(self) -> None:
        client = MagicMock()
        client.models.list = AsyncMock(return_value=MagicMock(data=[]))
        assert await self._provider(client).validate_credentials() is True

        client.models.list = AsyncMock(side_effect=_openai_error())
        assert await self._provider(client).validate_credentials() is False

    @pytest.mark.asyncio
    async def test_missing_key_is_unavailable_without_network(self) -> None:
        client = MagicMock()
        provider = self._provider(client, key="")
        assert provider.is_available() is False
        assert await provider.validate_credentials() is False
        client.models.list.assert_not_called()

    def test_local_provider_needs_no_key(self) -> None:
        provider = OpenAICompatibleLLMProvider(PROVIDER_SPECS["lmstudio"], client=MagicMock())
        assert provider.is_available() is True


# ======================================================================
# Anthropic adapter
# ======================================================================


class _FakeMessageStream:
    def __init__(self, texts: list[str]) -> None:
        self.text_stream = _aiter(texts)

    async def __aenter__(self) -> _FakeMessageStream:
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None


class TestAnthropicProvider:
    @pytest.mark.asyncio
    async def test_stream_chat_yields_text(self) -> None:
        client = MagicMock()
        client.messages.stream = MagicMock(return_value=_FakeMessageStream(["Hi", "", " there"]))
        provider = AnthropicLLMProvider(api_key="sk-ant", client=client)

        chunks = await _collect(provider.stream_chat("prompt", "claude-3-haiku"))

        assert [c.content for c in chunks] == ["Hi", " there"]
        kwargs = client.messages.stream.call_args.kwargs
        assert kwargs["max_tokens"] == 2048
        assert "temperature" not in kwargs

    @pytest.mark.asyncio
    async def test_stream_chat_wraps_sdk_errors(self) -> None:
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client = MagicMock()
        client.messages.stream = MagicMock(
            side_effect=anthropic.APIError("overloaded", request=request, body=None)
        )
        provider = AnthropicLLMProvider(api_key="sk-ant", client=client)

        with pytest.raises(LLMError, match="Chat stream failed"):
            await _collect(provider.stream_chat("p", "claude-3-haiku"))

    @pytest.mark.asyncio
    async def test_embed_is_unsupported(self) -> None:
        provider = AnthropicLLMProvider(api_key="sk-ant", client=MagicMock())
        assert provider.supports_embeddings() is False
        with pytest.raises(UnsupportedCapabilityError):
            await provider.embed(["a"], "claude-3-haiku")

    @pytest.mark.asyncio
    async def test_list_models(self) -> None:
        client = MagicMock()
        client.models.list = AsyncMock(
            return_value=MagicMock(
                data=[MagicMock(id="claude-3-haiku", display_name="Claude 3 Haiku")]
            )
        )
        models = await AnthropicLLMProvider(api_key="k", client=client).list_models()
        assert [(m.id, m.name, m.provider) for m in models] == [
            ("claude-3-haiku", "Claude 3 Haiku", "anthropic")
        ]


# ======================================================================
# Ollama adapter
# ======================================================================


class TestOllamaProvider:
    def _provider(self, handler) -> OllamaLLMProvider:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return OllamaLLMProvider(client, base_url="http://ollama.test:11434")

    @pytest.mark.asyncio
    async def test_embed(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"embeddings": [[0.1, 0.2], [0.3, 0.4]]})

        vectors = await self._provider(handler).embed(["a", "b"], "nomic-embed-text")

        assert vectors == [[0.1, 0.2], [0.3, 0.4]]
        assert seen[0].url.path == "/api/embed"
        assert json.loads(seen[0].content) == {"model": "nomic-embed-text", "input": ["a", "b"]}

    @pytest.mark.asyncio
    async def test_embed_rejects_bad_response(self) -> None:
        provider = self._provider(lambda request: httpx.Response(200, json={"oops": True}))
        with pytest.raises(LLMError, match="no 'embeddings' list"):
            await provider.embed(["a"], "nomic-embed-text")

    @pytest.mark.asyncio
    async def test_embed_http_error_is_llm_error(self) -> None:
        provider = self._provider(lambda request: httpx.Response(404, text="model not found"))
        with pytest.raises(LLMError, match="model not found"):
            await provider.embed(["a"], "missing-model")

    @pytest.mark.asyncio
    async def test_stream_chat_parses_ndjson(self) -> None:
        lines = [
            {"message": {"content": "Hel"}, "done": False},
            {"message": {"content": "lo"}, "done": False},
            {"message": {"content": ""}, "done": True, "done_reason": "stop"},
        ]
        body = "\n".join(json.dumps(line) for line in lines) + "\n"
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=body.encode())

        chunks = await _collect(
            self._provider(handler).stream_chat("prompt", "llama3", temperature=0.1, max_tokens=32)
        )

        assert [c.content for c in chunks] == ["Hel", "lo", ""]
        assert chunks[-1].finish_reason == "stop"
        sent = json.loads(seen[0].content)
        assert sent["stream"] is True
        assert sent["options"] == {"temperature": 0.1, "num_predict": 32}

    @pytest.mark.asyncio
    async def test_stream_chat_malformed_line(self) -> None:
        provider = self._provider(lambda request: httpx.Response(200, content=b"{not json}\n"))
        with pytest.raises(LLMError, match="Malformed stream line"):
            await _collect(provider.stream_chat("p", "llama3"))

    @pytest.mark.asyncio
    async def test_stream_chat_error_status(self) -> None:
        provider = self._provider(lambda request: httpx.Response(500, text="gpu on fire"))
        with pytest.raises(LLMError, match="gpu on fire"):
            await _collect(provider.stream_chat("p", "llama3"))

    @pytest.mark.asyncio
    async def test_list_models(self) -> None:
        tags = {"models": [{"name": "llama3:8b"}, {"name": "nomic-embed-text:latest"}]}
        provider = self._provider(lambda request: httpx.Response(200, json=tags))

        models = await provider.list_models()

        assert [(m.id, m.type) for m in models] == [
            ("llama3:8b", "chat"),
            ("nomic-embed-text:latest", "embedding"),
        ]

    @pytest.mark.asyncio
    async def test_validate_credentials_unreachable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused")

        assert await self._provider(handler).validate_credentials() is False
