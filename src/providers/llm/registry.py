"""Data tables describing the LLM providers ragdesk can talk to.

Two tables drive provider handling:

- ``PROVIDER_SPECS`` -- one :class:`ProviderSpec` per provider id: which
  adapter implements it, where its API lives, whether it runs locally and
  whether it serves embeddings.  Adding an OpenAI-compatible provider is a
  one-line change here.
- ``ROUTING_RULES`` -- ordered ``(match, pattern, provider_id)`` rules that
  map a model identifier to a provider.  The first matching rule wins, so
  specific prefixes sit above broad substring matches.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from src.utils.errors import ConfigurationError, UnsupportedModelError

AdapterKind = Literal["openai", "anthropic", "ollama"]
MatchKind = Literal["prefix", "contains"]


@dataclass(frozen=True)
class ProviderSpec:
    """Static description of one LLM provider."""

    provider_id: str
    display_name: str
    adapter: AdapterKind
    default_base_url: str | None = None
    local: bool = False
    supports_embeddings: bool = True
    requires_api_key: bool = True
    # Substrings a model id must contain to be listed; empty lists everything.
    model_filter: tuple[str, ...] = ()


PROVIDER_SPECS: dict[str, ProviderSpec] = {
    spec.provider_id: spec
    for spec in (
        ProviderSpec(
            "openai", "OpenAI", "openai", "https://api.openai.com/v1",
            model_filter=("gpt", "embedding"),
        ),
        ProviderSpec(
            "anthropic", "Anthropic", "anthropic", "https://api.anthropic.com",
            supports_embeddings=False,
        ),
        ProviderSpec(
            "ollama", "Ollama", "ollama", "http://localhost:11434",
            local=True, requires_api_key=False,
        ),
        ProviderSpec(
            "lmstudio", "LM Studio", "openai", "http://localhost:1234/v1",
            local=True, requires_api_key=False,
        ),
        ProviderSpec(
            "openrouter", "OpenRouter", "openai", "https://openrouter.ai/api/v1",
            supports_embeddings=False,
        ),
        ProviderSpec("mistral", "Mistral AI", "openai", "https://api.mistral.ai/v1"),
        ProviderSpec(
            "groq", "Groq", "openai", "https://api.groq.com/openai/v1",
            supports_embeddings=False,
        ),
        ProviderSpec("together", "Together AI", "openai", "https://api.together.xyz/v1"),
        ProviderSpec(
            "google", "Google AI", "openai",
            "https://generativelanguage.googleapis.com/v1beta/openai/",
        ),
        ProviderSpec(
            "xai", "xAI", "openai", "https://api.x.ai/v1",
            supports_embeddings=False,
        ),
        ProviderSpec(
            "deepseek", "DeepSeek", "openai", "https://api.deepseek.com/v1",
            supports_embeddings=False,
        ),
        ProviderSpec("cohere", "Cohere", "openai", "https://api.cohere.ai/compatibility/v1"),
    )
}


ROUTING_RULES: tuple[tuple[MatchKind, str, str], ...] = (
    ("prefix", "gpt-", "openai"),
    ("prefix", "text-embedding-3", "openai"),
    ("prefix", "text-embedding-ada", "openai"),
    ("prefix", "claude-", "anthropic"),
    ("prefix", "command-", "cohere"),
    ("prefix", "embed-", "cohere"),
    ("prefix", "mistral-", "mistral"),
    ("contains", "ollama", "ollama"),
    ("contains", "llama", "ollama"),
    ("contains", "mistral", "ollama"),
    ("prefix", "groq-", "groq"),
    ("contains", "together", "together"),
    ("contains", "gemini-", "google"),
    ("contains", "text-embedding", "google"),
    ("contains", "embedding-001", "google"),
    ("contains", "grok", "xai"),
    ("contains", "deepseek", "deepseek"),
)


def route_model(model: str) -> str:
    """Return the provider id that serves *model*.

    Raises
    ------
    UnsupportedModelError
        If no routing rule matches.
    """
    for kind, pattern, provider_id in ROUTING_RULES:
        if kind == "prefix" and model.startswith(pattern):
            return provider_id
        if kind == "contains" and pattern in model:
            return provider_id
    raise UnsupportedModelError(f"Unsupported model: {model}")


def get_provider_spec(provider_id: str) -> ProviderSpec:
    try:
        return PROVIDER_SPECS[provider_id]
    except KeyError:
        raise ConfigurationError(f"Unknown provider: {provider_id}") from None
