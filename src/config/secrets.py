"""Secret provider backed by :class:`Settings`.

Looks secrets up by field name (``openai_api_key``, ``ollama_base_url``
...).  Base URLs for providers without a dedicated field come from
``Settings.provider_base_urls``.
"""

from __future__ import annotations

from src.config.settings import Settings
from src.interfaces.secret_provider import ISecretProvider

_BASE_URL_SUFFIX = "_base_url"


class SettingsSecretProvider(ISecretProvider):
    """Read-only secret lookup over an immutable settings snapshot."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def get_app_settings(self) -> Settings:
        return self._settings

    def get_secret(self, key: str) -> str | None:
        value = getattr(self._settings, key, None) if key in Settings.model_fields else None
        if isinstance(value, str) and value:
            return value
        if key.endswith(_BASE_URL_SUFFIX):
            provider = key[: -len(_BASE_URL_SUFFIX)]
            return self._settings.provider_base_urls.get(provider) or None
        return None
