"""LLM provider adapters.

Three concrete implementations of ILLMProvider (src/interfaces/llm_provider.py),
selected per provider by the data in ``registry.py``:
    - OpenAICompatibleLLMProvider -- OpenAI and every OpenAI-shaped API
    - AnthropicLLMProvider        -- Claude via the Messages API
    - OllamaLLMProvider           -- local models via Ollama's native API

``LLMClientFactory`` builds them from secrets and routes model ids to
providers.
"""

from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.factory import LLMClientFactory
from src.providers.llm.ollama_provider import OllamaLLMProvider
from src.providers.llm.openai_provider import OpenAICompatibleLLMProvider
from src.providers.llm.registry import PROVIDER_SPECS, ProviderSpec, route_model

__all__ = [
    "AnthropicLLMProvider",
    "LLMClientFactory",
    "OllamaLLMProvider",
    "OpenAICompatibleLLMProvider",
    "PROVIDER_SPECS",
    "ProviderSpec",
    "route_model",
]
