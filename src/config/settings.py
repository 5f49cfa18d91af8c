"""Application settings loaded from environment variables via pydantic-settings.

Sources, highest priority first:

  1. Environment variables -- e.g. ``OPENAI_API_KEY=sk-...``
  2. ``.env`` file in the working directory
  3. ``config/config.yaml`` (see :mod:`src.config.loader`)
  4. The defaults below

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  An empty
string means "not configured": the LLM factory and provider service treat
providers without a key as unavailable.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """ragdesk application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === LLM providers ===
    openai_api_key: str = ""
    openai_base_url: str = ""
    anthropic_api_key: str = ""
    cohere_api_key: str = ""
    mistral_api_key: str = ""
    groq_api_key: str = ""
    together_api_key: str = ""
    google_api_key: str = ""  # also used by the Google Custom Search provider
    xai_api_key: str = ""
    deepseek_api_key: str = ""
    openrouter_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"
    lmstudio_base_url: str = "http://localhost:1234/v1"
    # Extra per-provider base URL overrides, e.g. {"groq": "https://proxy/v1"}.
    provider_base_urls: dict[str, str] = Field(default_factory=dict)

    # === Model defaults ===
    default_chat_model: str = "gpt-4"
    default_embedding_model: str = "text-embedding-3-small"
    temperature: float = 0.7
    max_tokens: int = 2048

    # === Vector index (Qdrant) ===
    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: str = ""
    qdrant_timeout: float = 30.0
    vector_max_retries: int = 3
    vector_retry_base_delay: float = 1.0
    upsert_batch_size: int = 100
    upsert_batch_delay: float = 0.1

    # === Ingestion ===
    chunk_size: int = 1000
    chunk_overlap: int = 200
    embedding_batch_size: int = 10
    embedding_batch_delay: float = 0.05

    # === Retrieval ===
    search_limit: int = 10
    web_search_threshold: int = 3
    web_search_max_results: int = 5
    history_window: int = 10
    context_dedup_window: int = 20

    # === Web search ===
    web_search_provider: str = "duckduckgo"
    brave_api_key: str = ""
    google_cse_id: str = ""
    serp_api_key: str = ""

    # === Provider probes ===
    connection_cache_ttl: float = 300.0

    # === Storage ===
    database_path: str = "data/ragdesk.db"

    # === App ===
    app_env: str = "development"
    log_level: str = "INFO"

    def get_configured_llm_providers(self) -> list[str]:
        """Return ids of LLM providers that have an API key or a local base URL."""
        keyed = [
            "openai",
            "anthropic",
            "cohere",
            "mistral",
            "groq",
            "together",
            "google",
            "xai",
            "deepseek",
            "openrouter",
        ]
        providers = [name for name in keyed if getattr(self, f"{name}_api_key")]
        if self.ollama_base_url:
            providers.append("ollama")
        if self.lmstudio_base_url:
            providers.append("lmstudio")
        return providers
